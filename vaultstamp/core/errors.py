"""
Standardized Error Handling for the VaultStamp API.

Every error response shares one JSON shape:
    {"error": <code>, "message": <text>, "details": [...], "request_id": <id>}

Duplicate content is NOT an error here: the upload workflow reports it as a
regular result message. Lookups that find nothing return empty results.
"""

import logging
import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Models
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail for a single error."""
    loc: list[str | int] | None = None
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Standard error response format."""
    error: str
    message: str
    details: list[ErrorDetail] | None = None
    request_id: str | None = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class VaultStampError(Exception):
    """Base exception for VaultStamp-specific errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "vaultstamp_error",
        status_code: int = 500,
        details: list[dict] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(VaultStampError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} '{identifier}' not found"
        super().__init__(
            message=message,
            error_code="not_found",
            status_code=404,
        )


class AuthenticationError(VaultStampError):
    """No caller identity was supplied."""

    def __init__(self, message: str = "Caller identity required"):
        super().__init__(
            message=message,
            error_code="authentication_required",
            status_code=401,
        )


class InvalidInputError(VaultStampError):
    """Input rejected before any hashing or mutation took place."""

    def __init__(self, message: str, field: str | None = None):
        details = None
        if field:
            details = [{"loc": [field], "msg": message, "type": "invalid_input"}]
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=422,
            details=details,
        )


class StorageError(VaultStampError):
    """Registry snapshot could not be read or written."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(
            message=message,
            error_code="storage_error",
            status_code=500,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

def get_request_id(request: Request) -> Optional[str]:
    """Extract request ID from request."""
    return request.headers.get("X-Request-Id")


async def vaultstamp_error_handler(request: Request, exc: VaultStampError) -> JSONResponse:
    """Handle VaultStamp-specific exceptions."""
    logger.warning(
        "VaultStampError: %s - %s",
        exc.error_code,
        exc.message,
        extra={"error_code": exc.error_code, "path": request.url.path},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
            "request_id": get_request_id(request),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions."""
    error_codes = {
        400: "bad_request",
        401: "authentication_required",
        403: "permission_denied",
        404: "not_found",
        405: "method_not_allowed",
        413: "payload_too_large",
        422: "validation_error",
        429: "rate_limit_exceeded",
        500: "internal_error",
    }

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error_codes.get(exc.status_code, "error"),
            "message": str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
            "details": None,
            "request_id": get_request_id(request),
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors raised by FastAPI/Pydantic."""
    details = [
        {
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]

    logger.info("Validation error on %s: %d issues", request.url.path, len(details))

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": details,
            "request_id": get_request_id(request),
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "Unhandled exception on %s: %s",
        request.url.path,
        str(exc),
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": None,
            "request_id": get_request_id(request),
        },
    )


# =============================================================================
# Setup Function
# =============================================================================

def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(VaultStampError, vaultstamp_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "VaultStampError",
    "ErrorResponse",
    "ErrorDetail",
    "NotFoundError",
    "AuthenticationError",
    "InvalidInputError",
    "StorageError",
    "setup_exception_handlers",
]
