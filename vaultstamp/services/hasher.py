"""
Content Hasher

SHA-256 digests rendered as lowercase hex. The digest is the lookup key of
the global registry, so the encoding must never change: 64 characters,
lowercase, no separators.
"""

import hashlib
import re

HASH_ALGORITHM = "sha256"
HASH_HEX_LENGTH = 64

_HEX_DIGEST = re.compile(rf"^[0-9a-f]{{{HASH_HEX_LENGTH}}}$")


class ContentHasher:
    """Compute and recognize content digests."""

    @classmethod
    def content_hash(cls, content: bytes) -> str:
        """Generate the SHA-256 hex digest of file content."""
        return hashlib.new(HASH_ALGORITHM, content).hexdigest()

    @classmethod
    def is_valid_hash(cls, value: str) -> bool:
        """True if value looks like a digest produced by content_hash()."""
        return bool(_HEX_DIGEST.match(value or ""))


