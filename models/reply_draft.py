from __future__ import annotations

from dataclasses import dataclass
from email.message import EmailMessage


def build_plain_message(to: str, subject: str, body: str, sender: str | None = None) -> EmailMessage:
    message = EmailMessage()
    if sender:
        message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body, charset="utf-8")
    return message


@dataclass(frozen=True, slots=True)
class ReplyDraft:
    """Transient reply built from a message's From/Subject headers."""

    to: str
    subject: str
    body: str
    in_reply_to: str
    thread_id: str | None = None
    sender: str | None = None

    def to_mime(self) -> EmailMessage:
        message = build_plain_message(self.to, self.subject, self.body, sender=self.sender)
        message["In-Reply-To"] = self.in_reply_to
        message["References"] = self.in_reply_to
        return message

    def as_bytes(self) -> bytes:
        return self.to_mime().as_bytes()
