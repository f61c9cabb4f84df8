"""
VaultStamp SDK - Base HTTP Client

Core HTTP functionality: identity propagation and error mapping.
"""

import json
from typing import Any, Dict, Optional

import httpx

from .exceptions import (
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
    VaultStampError,
)

IDENTITY_HEADER = "X-Caller-Identity"


class BaseClient:
    """Base HTTP client with error handling and caller identity."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 30.0,
        identity: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the base client.

        Args:
            base_url: The VaultStamp API base URL
            timeout: Request timeout in seconds
            identity: Caller identity sent with every request
            http_client: Pre-built client (e.g. a TestClient); base_url and
                timeout are ignored when given
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.identity = identity
        self._client: Optional[httpx.Client] = http_client
        self._owns_client = http_client is None

    @property
    def client(self) -> httpx.Client:
        """Get or create sync HTTP client."""
        if self._client is None:
            self._client = httpx.Client(base_url=self.base_url, timeout=self.timeout)
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {IDENTITY_HEADER: self.identity} if self.identity else {}

    def set_identity(self, identity: Optional[str]) -> None:
        """Switch the caller identity for subsequent requests."""
        self.identity = identity

    def _handle_response(self, response: httpx.Response) -> Any:
        """
        Return parsed JSON (or raw bytes for non-JSON bodies) on success,
        raise a typed exception otherwise.
        """
        request_id = response.headers.get("x-request-id")

        if response.status_code < 400:
            if response.headers.get("content-type", "").startswith("application/json"):
                return response.json()
            return response.content

        try:
            data = response.json()
        except json.JSONDecodeError:
            data = {"message": response.text}

        error_msg = data.get("message") or data.get("detail") or data.get("error") or "Unknown error"

        if response.status_code in (401, 403):
            raise AuthenticationError(
                message=error_msg,
                status_code=response.status_code,
                response_data=data,
                request_id=request_id,
            )

        if response.status_code == 404:
            raise NotFoundError(message=error_msg, response_data=data, request_id=request_id)

        if response.status_code == 422:
            raise ValidationError(
                message=error_msg,
                errors=data.get("details") or [],
                response_data=data,
                request_id=request_id,
            )

        if response.status_code == 429:
            raise RateLimitError(
                message=error_msg,
                retry_after=int(response.headers.get("retry-after", 60)),
                response_data=data,
                request_id=request_id,
            )

        if response.status_code >= 500:
            raise ServerError(
                message=error_msg,
                status_code=response.status_code,
                response_data=data,
                request_id=request_id,
            )

        raise VaultStampError(
            message=error_msg,
            status_code=response.status_code,
            response_data=data,
            request_id=request_id,
        )

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        """Make a GET request."""
        response = self.client.get(path, params=params, headers=self._headers())
        return self._handle_response(response)

    def post(
        self,
        path: str,
        json: Optional[Dict] = None,
        data: Optional[Dict] = None,
        files: Optional[Dict] = None,
    ) -> Any:
        """Make a POST request."""
        response = self.client.post(path, json=json, data=data, files=files, headers=self._headers())
        return self._handle_response(response)

    def delete(self, path: str) -> Any:
        """Make a DELETE request."""
        response = self.client.delete(path, headers=self._headers())
        return self._handle_response(response)

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
