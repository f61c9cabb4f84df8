# Registry services - hashing, catalogs, similarity, alerts

from vaultstamp.services.alerts import AlertOutbox
from vaultstamp.services.file_registry import (
    FileRecord,
    FileRegistryService,
    GlobalRegistry,
    OwnerCatalog,
    UploadResult,
    UploadStatus,
)
from vaultstamp.services.hasher import ContentHasher
from vaultstamp.services.similarity import (
    SimilarityIndex,
    SimilarityMatch,
    hamming_distance,
    similarity_percent,
)

__all__ = [
    "AlertOutbox",
    "ContentHasher",
    "FileRecord",
    "FileRegistryService",
    "GlobalRegistry",
    "OwnerCatalog",
    "SimilarityIndex",
    "SimilarityMatch",
    "UploadResult",
    "UploadStatus",
    "hamming_distance",
    "similarity_percent",
]
