"""
Similarity Index - perceptual fingerprint matching.

Fingerprints are unsigned 64-bit integers compared bit by bit. Narrower
values are zero-extended, which integers do for free.

    similarity = (64 - hamming_distance) * 100 // 64

A record matches when similarity >= threshold. With the default threshold
of 90, up to 6 differing bits match (90%) and 7 do not (89%).
"""

from dataclasses import dataclass
from typing import Iterable

FINGERPRINT_BITS = 64
FINGERPRINT_MAX = (1 << FINGERPRINT_BITS) - 1
DEFAULT_THRESHOLD = 90


def is_valid_fingerprint(value: int) -> bool:
    """Fingerprints must fit in an unsigned 64-bit word."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= FINGERPRINT_MAX


def hamming_distance(a: int, b: int) -> int:
    """Count of differing bits between two fingerprints."""
    return ((a ^ b) & FINGERPRINT_MAX).bit_count()


def similarity_percent(a: int, b: int, bit_width: int = FINGERPRINT_BITS) -> int:
    """Integer (floor) similarity percentage of two fingerprints."""
    return (bit_width - hamming_distance(a, b)) * 100 // bit_width


@dataclass(frozen=True)
class SimilarityMatch:
    """One registry entry that cleared the threshold."""
    name: str
    content_hash: str
    fingerprint: int
    owner: str
    similarity: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "content_hash": self.content_hash,
            "fingerprint": self.fingerprint,
            "owner": self.owner,
            "similarity": self.similarity,
        }


class SimilarityIndex:
    """
    Linear scan over registry entries.

    The index holds no state of its own; it is handed a snapshot of the
    global registry for every query.
    """

    def __init__(self, threshold: int = DEFAULT_THRESHOLD):
        self.threshold = threshold

    def find_similar(
        self,
        entries: Iterable,
        query: int,
        threshold: int | None = None,
    ) -> list[SimilarityMatch]:
        """
        Return every entry whose fingerprint is at least `threshold` percent
        similar to `query`, most similar first.

        Entries only need name, content_hash, fingerprint and owner attributes.
        """
        cutoff = self.threshold if threshold is None else threshold
        matches = []
        for entry in entries:
            score = similarity_percent(query, entry.fingerprint)
            if score >= cutoff:
                matches.append(SimilarityMatch(
                    name=entry.name,
                    content_hash=entry.content_hash,
                    fingerprint=entry.fingerprint,
                    owner=entry.owner,
                    similarity=score,
                ))
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches


def parse_fingerprint(value: str | int) -> int:
    """
    Parse a fingerprint given as an int, a decimal string or a 0x-prefixed
    hex string. Raises ValueError if it is not an unsigned 64-bit value.
    """
    if isinstance(value, bool):
        raise ValueError("Fingerprint must be an integer")
    if isinstance(value, str):
        text = value.strip().lower()
        fingerprint = int(text, 16) if text.startswith("0x") else int(text, 10)
    else:
        fingerprint = int(value)
    if not is_valid_fingerprint(fingerprint):
        raise ValueError(f"Fingerprint must be between 0 and {FINGERPRINT_MAX}")
    return fingerprint
