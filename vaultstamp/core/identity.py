"""
VaultStamp - Caller Identity

The identity provider is external: it hands us an opaque, stable string per
request. This module only extracts it from the request and never derives,
forges or reassigns one.

Sources (priority order):
1. X-Caller-Identity header
2. vaultstamp_uid cookie
3. Authorization: Bearer <identity>
"""

import secrets
import string
from typing import NewType, Optional

from fastapi import Cookie, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vaultstamp.core.config import Settings, get_settings
from vaultstamp.core.errors import AuthenticationError

Identity = NewType("Identity", str)

IDENTITY_HEADER = "X-Caller-Identity"
COOKIE_IDENTITY = "vaultstamp_uid"
IDENTITY_PREFIX = "vs-"

security_bearer = HTTPBearer(auto_error=False)


def generate_identity() -> Identity:
    """
    Mint a new opaque identity, e.g. "vs-7x9kM2pQa8Km3xPq".

    Used by clients that have no identity provider of their own.
    """
    alphabet = string.ascii_letters + string.digits
    random_part = "".join(secrets.choice(alphabet) for _ in range(16))
    return Identity(f"{IDENTITY_PREFIX}{random_part}")


def identity_from_request(
    request: Request,
    cookie_value: Optional[str] = None,
    credentials: Optional[HTTPAuthorizationCredentials] = None,
) -> Optional[Identity]:
    """Return the caller identity carried by the request, if any."""
    header_value = request.headers.get(IDENTITY_HEADER)
    for candidate in (header_value, cookie_value, credentials.credentials if credentials else None):
        if candidate and candidate.strip():
            return Identity(candidate.strip())
    return None


async def get_caller_identity(
    request: Request,
    vaultstamp_uid: Optional[str] = Cookie(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_bearer),
) -> Optional[Identity]:
    """FastAPI dependency: the caller identity, or None."""
    return identity_from_request(request, vaultstamp_uid, credentials)


async def require_identity(
    identity: Optional[Identity] = Depends(get_caller_identity),
    settings: Settings = Depends(get_settings),
) -> Identity:
    """
    Require a caller identity.

    In open mode anonymous callers share settings.open_mode_identity,
    in enforced mode they get a 401.
    """
    if identity:
        return identity

    if not settings.is_enforced:
        return Identity(settings.open_mode_identity)

    raise AuthenticationError(
        f"Caller identity required. Send the {IDENTITY_HEADER} header or the {COOKIE_IDENTITY} cookie."
    )
