from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class MessageRef:
    """Gmail message handle as returned by ``messages.list``."""

    id: str
    thread_id: str | None = None

    @classmethod
    def from_api(cls, payload: dict) -> "MessageRef":
        return cls(id=payload["id"], thread_id=payload.get("threadId"))


@dataclass(frozen=True, slots=True)
class MessageMetadata:
    """Subset of headers fetched for a single message."""

    id: str
    thread_id: str | None
    subject: str | None
    sender: str | None
