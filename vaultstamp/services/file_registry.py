"""
File Registry - content-addressed storage with per-owner catalogs

Provides:
- Per-owner catalogs (file name -> record, names unique per owner)
- Global registry (content hash -> record, one owner per distinct content)
- First-writer-wins ownership: content already claimed by another owner is
  rejected with a message, never stored twice
- Perceptual-fingerprint similarity search over every registered file
- Per-owner alert outbox
- Optional JSON snapshot on disk

Upload workflow, per request:
    Received -> Hashed -> Checked -> Rejected | Committed

Deleting a catalog entry never releases the global claim on its content.
"""

import base64
import json
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from vaultstamp.core.config import Settings
from vaultstamp.core.errors import InvalidInputError, StorageError
from vaultstamp.core.logging_config import get_logger
from vaultstamp.services.alerts import (
    DUMMY_NOTIFICATION,
    FILE_DELETED,
    SIMILAR_UPLOAD,
    UPLOAD_SUCCEEDED,
    VIEW_IN_CATALOG,
    AlertOutbox,
)
from vaultstamp.services.hasher import ContentHasher
from vaultstamp.services.similarity import (
    DEFAULT_THRESHOLD,
    FINGERPRINT_MAX,
    SimilarityIndex,
    SimilarityMatch,
    is_valid_fingerprint,
)

logger = get_logger(__name__)

SNAPSHOT_FILENAME = "registry.json"
DEFAULT_MEDIA_TYPE = "application/octet-stream"


# =============================================================================
# ENUMS
# =============================================================================

class UploadStatus(str, Enum):
    """Terminal states of the upload workflow."""
    COMMITTED = "committed"
    REJECTED = "rejected"     # Content already owned by someone else


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class FileRecord:
    """One stored file version. Immutable once created."""
    name: str
    content: bytes = field(repr=False)
    media_type: str
    content_hash: str
    fingerprint: int
    owner: str
    created_at: datetime

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def create(
        cls,
        name: str,
        content: bytes,
        media_type: str,
        fingerprint: int,
        owner: str,
        created_at: datetime,
        content_hash: str | None = None,
    ) -> "FileRecord":
        """Build a record, deriving the content hash unless already computed."""
        return cls(
            name=name,
            content=bytes(content),
            media_type=media_type,
            content_hash=content_hash or ContentHasher.content_hash(content),
            fingerprint=fingerprint,
            owner=owner,
            created_at=created_at,
        )

    def to_summary(self) -> dict:
        """Catalog listing entry (no content)."""
        return {
            "name": self.name,
            "size": self.size,
            "media_type": self.media_type,
            "content_hash": self.content_hash,
            "fingerprint": self.fingerprint,
            "timestamp": self.created_at.isoformat(),
        }

    def to_verification(self) -> dict:
        """Proof of existence and ownership, without the content."""
        return {
            "name": self.name,
            "media_type": self.media_type,
            "timestamp": self.created_at.isoformat(),
            "owner": self.owner,
            "fingerprint": self.fingerprint,
        }

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "content": base64.b64encode(self.content).decode("ascii"),
            "media_type": self.media_type,
            "content_hash": self.content_hash,
            "fingerprint": self.fingerprint,
            "owner": self.owner,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileRecord":
        content = base64.b64decode(data["content"])
        content_hash = ContentHasher.content_hash(content)
        if data.get("content_hash") and data["content_hash"] != content_hash:
            raise ValueError(f"Content hash mismatch for '{data.get('name')}'")
        return cls(
            name=data["name"],
            content=content,
            media_type=data.get("media_type", DEFAULT_MEDIA_TYPE),
            content_hash=content_hash,
            fingerprint=int(data.get("fingerprint", 0)),
            owner=data["owner"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class UploadResult:
    """Outcome of one upload request."""
    status: UploadStatus
    message: str
    content_hash: str
    record: Optional[FileRecord] = None

    @property
    def committed(self) -> bool:
        return self.status == UploadStatus.COMMITTED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "message": self.message,
            "content_hash": self.content_hash,
        }


# =============================================================================
# OWNER CATALOG
# =============================================================================

class OwnerCatalog:
    """Per-identity namespace of file name -> record. Names are case-sensitive."""

    def __init__(self):
        self._catalogs: dict[str, dict[str, FileRecord]] = {}

    def ensure(self, identity: str) -> dict[str, FileRecord]:
        """Return the identity's catalog, creating an empty one on first access."""
        if identity not in self._catalogs:
            self._catalogs[identity] = {}
        return self._catalogs[identity]

    def get(self, identity: str, name: str) -> Optional[FileRecord]:
        return self._catalogs.get(identity, {}).get(name)

    def put(self, identity: str, name: str, record: FileRecord) -> None:
        self.ensure(identity)[name] = record

    def remove(self, identity: str, name: str) -> bool:
        catalog = self._catalogs.get(identity)
        if catalog is None or name not in catalog:
            return False
        del catalog[name]
        return True

    def list(self, identity: str) -> list[FileRecord]:
        return list(self._catalogs.get(identity, {}).values())

    def owners(self) -> Iterator[str]:
        return iter(self._catalogs)

    def total(self) -> int:
        return sum(len(catalog) for catalog in self._catalogs.values())

    def copy(self) -> "OwnerCatalog":
        """Independent copy of the name maps. Records are immutable and shared."""
        clone = OwnerCatalog()
        clone._catalogs = {identity: dict(catalog) for identity, catalog in self._catalogs.items()}
        return clone

    def to_dict(self) -> dict:
        return {
            identity: {name: record.to_dict() for name, record in catalog.items()}
            for identity, catalog in self._catalogs.items()
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OwnerCatalog":
        catalogs = cls()
        for identity, entries in data.items():
            catalog = catalogs.ensure(identity)
            for name, record_data in entries.items():
                catalog[name] = FileRecord.from_dict(record_data)
        return catalogs


# =============================================================================
# GLOBAL REGISTRY
# =============================================================================

class GlobalRegistry:
    """
    Content hash -> record, across all owners.

    register() is not a compare-and-swap: callers must hold the service lock
    and have seen lookup() return None.
    """

    def __init__(self):
        self._records: dict[str, FileRecord] = {}

    def lookup(self, content_hash: str) -> Optional[FileRecord]:
        return self._records.get(content_hash)

    def register(self, content_hash: str, record: FileRecord) -> None:
        self._records[content_hash] = record

    def entries(self) -> list[FileRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, content_hash: str) -> bool:
        return content_hash in self._records

    def copy(self) -> "GlobalRegistry":
        clone = GlobalRegistry()
        clone._records = dict(self._records)
        return clone

    def to_dict(self) -> dict:
        return {content_hash: record.to_dict() for content_hash, record in self._records.items()}

    @classmethod
    def from_dict(cls, data: dict) -> "GlobalRegistry":
        registry = cls()
        for content_hash, record_data in data.items():
            record = FileRecord.from_dict(record_data)
            if record.content_hash != content_hash:
                raise ValueError(f"Registry key {content_hash} does not match its content")
            registry.register(content_hash, record)
        return registry


# =============================================================================
# FILE REGISTRY SERVICE
# =============================================================================

class FileRegistryService:
    """
    Owns the catalogs, the global registry and the alert outbox.

    Every public method runs under one re-entrant lock, so the upload
    workflow's check-then-register sequence is atomic even when handlers
    run on a thread pool.
    """

    def __init__(
        self,
        similarity_threshold: int = DEFAULT_THRESHOLD,
        similarity_alerts_enabled: bool = True,
        max_upload_size: int | None = None,
        data_dir: str | Path | None = None,
    ):
        self.similarity_threshold = similarity_threshold
        self.similarity_alerts_enabled = similarity_alerts_enabled
        self.max_upload_size = max_upload_size

        self._lock = threading.RLock()
        self._last_timestamp: Optional[datetime] = None

        self.catalogs = OwnerCatalog()
        self.registry = GlobalRegistry()
        self.outbox = AlertOutbox()
        self.similarity = SimilarityIndex(threshold=similarity_threshold)

        self._snapshot_path: Optional[Path] = None
        if data_dir:
            storage_dir = Path(data_dir)
            storage_dir.mkdir(parents=True, exist_ok=True)
            self._snapshot_path = storage_dir / SNAPSHOT_FILENAME
            self._load_snapshot()

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileRegistryService":
        return cls(
            similarity_threshold=settings.similarity_threshold,
            similarity_alerts_enabled=settings.similarity_alerts_enabled,
            max_upload_size=settings.max_upload_size_bytes,
            data_dir=settings.data_dir or None,
        )

    # -------------------------------------------------------------------------
    # Snapshot persistence
    # -------------------------------------------------------------------------

    def _load_snapshot(self) -> None:
        """Load registry state from the snapshot file, if one exists."""
        if not self._snapshot_path or not self._snapshot_path.exists():
            return
        try:
            with open(self._snapshot_path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            self.registry = GlobalRegistry.from_dict(data.get("registry", {}))
            self.catalogs = OwnerCatalog.from_dict(data.get("catalogs", {}))
            self.outbox = AlertOutbox.from_dict(data.get("outbox", {}))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load registry snapshot %s: %s", self._snapshot_path, e)
            raise StorageError(f"Registry snapshot is unreadable: {e}") from e

        timestamps = [r.created_at for r in self.registry.entries()]
        timestamps.extend(r.created_at for owner in self.catalogs.owners() for r in self.catalogs.list(owner))
        self._last_timestamp = max(timestamps, default=None)

        logger.info(
            "Loaded registry snapshot: %d contents, %d catalog entries",
            len(self.registry),
            self.catalogs.total(),
            extra={"snapshot": str(self._snapshot_path)},
        )

    def _save_snapshot(self) -> None:
        """Write state atomically (temp file + rename)."""
        if not self._snapshot_path:
            return
        data = {
            "registry": self.registry.to_dict(),
            "catalogs": self.catalogs.to_dict(),
            "outbox": self.outbox.to_dict(),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        temp_path = self._snapshot_path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            temp_path.replace(self._snapshot_path)
        except OSError as e:
            logger.error("Failed to write registry snapshot %s: %s", self._snapshot_path, e)
            raise StorageError(f"Registry snapshot could not be written: {e}") from e

    @contextmanager
    def _persisted(self) -> Iterator[None]:
        """
        Run a mutation and write the snapshot. If the write fails, the
        registry, catalogs and outbox are put back as they were.

        Callers must hold the lock.
        """
        if not self._snapshot_path:
            yield
            return
        checkpoint = (self.registry.copy(), self.catalogs.copy(), self.outbox.copy())
        try:
            yield
            self._save_snapshot()
        except StorageError:
            self.registry, self.catalogs, self.outbox = checkpoint
            raise

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _now(self) -> datetime:
        """Current UTC time, strictly after every timestamp handed out so far."""
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _validate_upload(self, name: str, content: bytes, fingerprint: int) -> None:
        if not name or not name.strip():
            raise InvalidInputError("File name must not be empty", field="name")
        if not content:
            raise InvalidInputError("File content must not be empty", field="content")
        if self.max_upload_size is not None and len(content) > self.max_upload_size:
            raise InvalidInputError(
                f"File too large: {len(content)} bytes (maximum {self.max_upload_size})",
                field="content",
            )
        if not is_valid_fingerprint(fingerprint):
            raise InvalidInputError(
                f"Fingerprint must be an unsigned 64-bit integer (0..{FINGERPRINT_MAX})",
                field="fingerprint",
            )

    def _notify_similar_owners(self, record: FileRecord) -> None:
        """Tell other owners that a new upload resembles one of their files."""
        others = [r for r in self.registry.entries() if r.owner != record.owner]
        for match in self.similarity.find_similar(others, record.fingerprint):
            self.outbox.append(
                match.owner,
                SIMILAR_UPLOAD.format(similarity=match.similarity, name=match.name),
            )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def check_file_exists(self, identity: str, name: str) -> bool:
        """True if the caller's catalog has an entry with exactly this name."""
        with self._lock:
            return self.catalogs.get(identity, name) is not None

    def upload_file(
        self,
        identity: str,
        name: str,
        content: bytes,
        media_type: str = DEFAULT_MEDIA_TYPE,
        fingerprint: int = 0,
    ) -> UploadResult:
        """
        Run the upload workflow.

        Returns an UploadResult in either terminal state. Duplicate content
        owned by another identity is a REJECTED result, not an exception;
        invalid input raises InvalidInputError before anything is hashed.
        """
        self._validate_upload(name, content, fingerprint)

        content_hash = ContentHasher.content_hash(content)

        with self._lock:
            existing = self.registry.lookup(content_hash)
            if existing is not None and existing.owner != identity:
                logger.info(
                    "Upload rejected: content already registered to another owner",
                    extra={"owner": identity, "content_hash": content_hash, "file_name": name},
                )
                return UploadResult(
                    status=UploadStatus.REJECTED,
                    message=(
                        f"File '{name}' was not uploaded: identical content is already "
                        f"registered to another owner."
                    ),
                    content_hash=content_hash,
                )

            record = FileRecord.create(
                name=name,
                content=content,
                media_type=media_type or DEFAULT_MEDIA_TYPE,
                fingerprint=fingerprint,
                owner=identity,
                created_at=self._now(),
                content_hash=content_hash,
            )

            newly_registered = existing is None
            with self._persisted():
                if newly_registered:
                    self.registry.register(content_hash, record)
                self.catalogs.put(identity, name, record)

                self.outbox.append(identity, UPLOAD_SUCCEEDED.format(name=name))
                self.outbox.append(identity, VIEW_IN_CATALOG.format(name=name))

                if newly_registered and self.similarity_alerts_enabled:
                    self._notify_similar_owners(record)

        logger.info(
            "Upload committed: %s (%d bytes)",
            name,
            record.size,
            extra={"owner": identity, "content_hash": content_hash, "new_content": newly_registered},
        )
        return UploadResult(
            status=UploadStatus.COMMITTED,
            message=f"File '{name}' uploaded successfully.",
            content_hash=content_hash,
            record=record,
        )

    def get_files(self, identity: str) -> list[FileRecord]:
        """Every record in the caller's catalog."""
        with self._lock:
            return self.catalogs.list(identity)

    def get_file(self, identity: str, name: str) -> Optional[FileRecord]:
        """The caller's record for `name`, content included."""
        with self._lock:
            return self.catalogs.get(identity, name)

    def delete_file(self, identity: str, name: str) -> bool:
        """Remove a catalog entry. The global registry keeps its claim."""
        with self._lock:
            if self.catalogs.get(identity, name) is None:
                return False
            with self._persisted():
                self.catalogs.remove(identity, name)
                self.outbox.append(identity, FILE_DELETED.format(name=name))
        logger.info("Catalog entry deleted: %s", name, extra={"owner": identity})
        return True

    def verify_by_hash(self, content_hash: str) -> Optional[FileRecord]:
        """Registered record for a content hash, or None."""
        normalized = content_hash.strip().lower()
        if not ContentHasher.is_valid_hash(normalized):
            return None
        with self._lock:
            return self.registry.lookup(normalized)

    def find_similar(self, fingerprint: int, threshold: int | None = None) -> list[SimilarityMatch]:
        """Registered files whose fingerprint is within the similarity threshold."""
        if not is_valid_fingerprint(fingerprint):
            raise InvalidInputError(
                f"Fingerprint must be an unsigned 64-bit integer (0..{FINGERPRINT_MAX})",
                field="fingerprint",
            )
        if threshold is not None and not 0 <= threshold <= 100:
            raise InvalidInputError("Threshold must be between 0 and 100", field="threshold")
        with self._lock:
            entries = self.registry.entries()
        return self.similarity.find_similar(entries, fingerprint, threshold)

    def send_dummy_notification(self, identity: str) -> str:
        """Append a fixed test alert to the caller's outbox."""
        with self._lock, self._persisted():
            self.outbox.append(identity, DUMMY_NOTIFICATION)
        return "Dummy notification sent."

    def get_alerts(self, identity: str) -> list[str]:
        """The caller's alerts in append order. Reading does not clear them."""
        with self._lock:
            return self.outbox.peek(identity)

    def get_statistics(self) -> dict:
        """Registry statistics."""
        with self._lock:
            owners = set(self.catalogs.owners())
            owners.update(r.owner for r in self.registry.entries())
            return {
                "registered_contents": len(self.registry),
                "catalog_entries": self.catalogs.total(),
                "owners": len(owners),
                "alerts": self.outbox.total(),
                "persistent": self._snapshot_path is not None,
            }
