from __future__ import annotations

from dataclasses import dataclass

INBOX_LABEL_ID = "INBOX"
DEFAULT_LABEL_NAME = "PENDING"


@dataclass(frozen=True, slots=True)
class Label:
    name: str
    id: str
    label_list_visibility: str = "labelShow"
    message_list_visibility: str = "show"

    @classmethod
    def from_api(cls, payload: dict) -> "Label":
        return cls(
            name=payload["name"],
            id=payload["id"],
            label_list_visibility=payload.get("labelListVisibility", "labelShow"),
            message_list_visibility=payload.get("messageListVisibility", "show"),
        )
