"""
Alert Outbox - per-identity, append-only notification messages.

Reads never consume: there is no delivery or acknowledgement step.
"""

from typing import Iterator

UPLOAD_SUCCEEDED = "File '{name}' uploaded successfully."
VIEW_IN_CATALOG = "View the details of '{name}' in your catalog."
FILE_DELETED = "File '{name}' was removed from your catalog."
SIMILAR_UPLOAD = "A new upload is {similarity}% similar to your file '{name}'."
DUMMY_NOTIFICATION = "This is a test notification from VaultStamp."


class AlertOutbox:
    """Owner-scoped lists of human-readable strings."""

    def __init__(self):
        self._alerts: dict[str, list[str]] = {}

    def append(self, identity: str, message: str) -> None:
        """Add a message to the end of the identity's list."""
        self._alerts.setdefault(identity, []).append(message)

    def peek(self, identity: str) -> list[str]:
        """Copy of the identity's messages in append order."""
        return list(self._alerts.get(identity, []))

    def owners(self) -> Iterator[str]:
        return iter(self._alerts)

    def total(self) -> int:
        return sum(len(messages) for messages in self._alerts.values())

    def copy(self) -> "AlertOutbox":
        clone = AlertOutbox()
        clone._alerts = {identity: list(messages) for identity, messages in self._alerts.items()}
        return clone

    def to_dict(self) -> dict[str, list[str]]:
        return {identity: list(messages) for identity, messages in self._alerts.items()}

    @classmethod
    def from_dict(cls, data: dict[str, list[str]]) -> "AlertOutbox":
        outbox = cls()
        for identity, messages in data.items():
            outbox._alerts[identity] = [str(m) for m in messages]
        return outbox
