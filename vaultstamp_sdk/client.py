"""
VaultStamp SDK - Registry Client

One method per registry operation, returning dataclasses.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from .base import BaseClient


@dataclass
class UploadResult:
    """Outcome of an upload. A rejected upload is not an exception."""
    status: str
    message: str
    content_hash: str

    @property
    def committed(self) -> bool:
        return self.status == "committed"

    @property
    def rejected(self) -> bool:
        return self.status == "rejected"


@dataclass
class FileInfo:
    """Entry in the caller's catalog."""
    name: str
    size: int
    media_type: str
    content_hash: str
    fingerprint: int
    timestamp: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileInfo":
        return cls(
            name=data["name"],
            size=data["size"],
            media_type=data["media_type"],
            content_hash=data["content_hash"],
            fingerprint=data["fingerprint"],
            timestamp=data["timestamp"],
        )


@dataclass
class Verification:
    """Ownership record for a content hash."""
    name: str
    media_type: str
    timestamp: str
    owner: str
    fingerprint: int


@dataclass
class SimilarFile:
    """Registered file that resembles a queried fingerprint."""
    name: str
    content_hash: str
    fingerprint: int
    owner: str
    similarity: int


class VaultStampClient(BaseClient):
    """
    VaultStamp registry client.

    Example:
        ```python
        from vaultstamp_sdk import VaultStampClient

        client = VaultStampClient("http://localhost:8000", identity="vs-alice")
        result = client.upload_file("logo.png", logo_bytes, "image/png", fingerprint=0xFFFF)
        if result.rejected:
            print(result.message)

        proof = client.verify_file_by_hash(result.content_hash)
        matches = client.find_files_with_similar_phash(0xFFFE)
        ```
    """

    def check_file_exists(self, name: str) -> bool:
        return bool(self.get("/api/files/exists", params={"name": name})["exists"])

    def upload_file(
        self,
        name: str,
        content: bytes,
        media_type: str = "application/octet-stream",
        fingerprint: int = 0,
    ) -> UploadResult:
        """Upload bytes under `name` into the caller's catalog."""
        data = self.post(
            "/api/files/upload",
            data={"name": name, "media_type": media_type, "fingerprint": str(fingerprint)},
            files={"file": (name, content, media_type)},
        )
        return UploadResult(**data)

    def get_files(self) -> List[FileInfo]:
        return [FileInfo.from_dict(item) for item in self.get("/api/files")]

    def get_file(self, name: str) -> bytes:
        """Download one of the caller's files. Raises NotFoundError if absent."""
        return self.get(f"/api/files/{quote(name)}/content")

    def delete_file(self, name: str) -> bool:
        return bool(self.delete(f"/api/files/{quote(name)}")["deleted"])

    def verify_file_by_hash(self, content_hash: str) -> Optional[Verification]:
        """Ownership record for a hash, or None if nobody registered it."""
        data = self.get(f"/api/verify/{quote(content_hash)}")
        record = data.get("record")
        return Verification(**record) if record else None

    def find_files_with_similar_phash(
        self,
        fingerprint: Union[int, str],
        threshold: Optional[int] = None,
    ) -> List[SimilarFile]:
        params: Dict[str, Any] = {"fingerprint": str(fingerprint)}
        if threshold is not None:
            params["threshold"] = threshold
        return [SimilarFile(**item) for item in self.get("/api/similar", params=params)]

    def send_dummy_notification(self) -> str:
        return self.post("/api/alerts/dummy")["message"]

    def get_alerts(self) -> List[str]:
        return list(self.get("/api/alerts"))
