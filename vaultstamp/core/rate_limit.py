"""
Rate Limiting for the VaultStamp API.

Uses slowapi with in-memory storage. Limits are keyed on caller identity
so shared NAT addresses do not throttle each other; anonymous callers fall
back to their IP address.
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from vaultstamp.core.config import Settings, get_settings
from vaultstamp.core.identity import COOKIE_IDENTITY, IDENTITY_HEADER

logger = logging.getLogger(__name__)


def get_caller_key(request: Request) -> str:
    """Rate limit key: caller identity if present, otherwise client IP."""
    identity = request.headers.get(IDENTITY_HEADER) or request.cookies.get(COOKIE_IDENTITY)
    if identity:
        return f"id:{identity[:64]}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"

    return f"ip:{get_remote_address(request)}"


_configured: Optional[Settings] = None


def configure_rate_limits(settings: Settings) -> None:
    """Use these settings for the limits. create_app() calls this."""
    global _configured
    _configured = settings


def _limit_settings() -> Settings:
    return _configured or get_settings()


def default_limit() -> str:
    """Limit for every route, read from settings at request time."""
    return _limit_settings().rate_limit_default


def upload_limit() -> str:
    """Upload limit, read from settings at request time."""
    return _limit_settings().rate_limit_upload


def create_limiter() -> Limiter:
    return Limiter(
        key_func=get_caller_key,
        default_limits=[default_limit],
        storage_uri="memory://",
        strategy="fixed-window",
    )


# Decorators are bound at import time, so every app shares this instance
# and its limits follow the settings most recently passed to create_app().
limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return the standard error body with retry information."""
    limit_value = str(exc.detail) if hasattr(exc, "detail") else "Rate limit exceeded"

    logger.warning(
        "Rate limit exceeded: %s on %s %s",
        get_caller_key(request),
        request.method,
        request.url.path,
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down.",
            "details": [{"limit": limit_value, "retry_after": 60}],
            "request_id": request.headers.get("X-Request-Id"),
        },
        headers={"Retry-After": "60"},
    )
