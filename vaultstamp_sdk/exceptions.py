"""
VaultStamp SDK - Custom Exceptions

Typed exceptions for API error handling.
"""

from typing import Any, Dict, Optional


class VaultStampError(Exception):
    """Base exception for all VaultStamp SDK errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        self.request_id = request_id

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        if self.request_id:
            parts.append(f"[Request ID: {self.request_id}]")
        return " ".join(parts)


class AuthenticationError(VaultStampError):
    """Raised when the server requires a caller identity."""

    def __init__(self, message: str = "Caller identity required", **kwargs):
        kwargs.setdefault("status_code", 401)
        super().__init__(message, **kwargs)


class NotFoundError(VaultStampError):
    """Raised when a requested file is not in the caller's catalog."""

    def __init__(self, message: str = "Not found", **kwargs):
        super().__init__(message, status_code=404, **kwargs)


class ValidationError(VaultStampError):
    """Raised when the server rejects the input."""

    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[list] = None,
        **kwargs,
    ):
        super().__init__(message, status_code=422, **kwargs)
        self.errors = errors or []


class RateLimitError(VaultStampError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, status_code=429, **kwargs)
        self.retry_after = retry_after


class ServerError(VaultStampError):
    """Raised when a server error occurs."""

    def __init__(self, message: str = "Internal server error", **kwargs):
        kwargs.setdefault("status_code", 500)
        super().__init__(message, **kwargs)
