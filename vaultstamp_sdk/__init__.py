"""
VaultStamp Python SDK

Usage:
    from vaultstamp_sdk import VaultStampClient

    client = VaultStampClient(base_url="http://localhost:8000", identity="vs-alice")
    result = client.upload_file("logo.png", data, "image/png", fingerprint=0xFFFFFFFFFFFFFFFF)
"""

from .client import FileInfo, SimilarFile, UploadResult, VaultStampClient, Verification
from .exceptions import (
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
    VaultStampError,
)

__version__ = "1.0.0"
__all__ = [
    "VaultStampClient",
    "UploadResult",
    "FileInfo",
    "Verification",
    "SimilarFile",
    "VaultStampError",
    "AuthenticationError",
    "NotFoundError",
    "ValidationError",
    "RateLimitError",
    "ServerError",
]
