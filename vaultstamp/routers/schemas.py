"""
Response schemas for the VaultStamp API.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ExistsResponse(BaseModel):
    """checkFileExists result."""
    name: str
    exists: bool


class UploadResponse(BaseModel):
    """uploadFile result. A rejected upload is a normal response, not an error."""
    status: str = Field(..., description="committed | rejected")
    message: str
    content_hash: str


class FileSummary(BaseModel):
    """Catalog listing entry."""
    name: str
    size: int
    media_type: str
    content_hash: str
    fingerprint: int
    timestamp: str


class DeleteResponse(BaseModel):
    name: str
    deleted: bool


class VerificationRecord(BaseModel):
    """Who registered a content hash, and when. Never carries the content."""
    name: str
    media_type: str
    timestamp: str
    owner: str
    fingerprint: int


class VerifyResponse(BaseModel):
    """verifyFileByHash result; record is null when the hash is unknown."""
    content_hash: str
    found: bool
    record: Optional[VerificationRecord] = None


class SimilarityMatchResponse(BaseModel):
    name: str
    content_hash: str
    fingerprint: int
    owner: str
    similarity: int = Field(..., ge=0, le=100)


class MessageResponse(BaseModel):
    message: str


class IdentityResponse(BaseModel):
    identity: str
