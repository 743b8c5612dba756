"""Helpers that turn message metadata into an encoded reply."""

from __future__ import annotations

import base64
import re

from models.email_message import MessageMetadata
from models.reply_draft import ReplyDraft
from services.errors import AddressParseError, HeaderMissing, InvalidHeader

REPLY_PREFIX = "Re:"
DEFAULT_SIGNATURE = "The Team"
DEFAULT_REPLY_BODY = "Dear,\n\nWe have received your mail and will reply soon.\n\nRegards,\n{signature}"

_ANGLE_ADDRESS = re.compile(r"<\s*([^<>\s]+)\s*>")
_LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


def extract_reply_address(from_header: str) -> str:
    match = _ANGLE_ADDRESS.search(from_header)
    if not match:
        raise AddressParseError(from_header)
    return match.group(1)


def reply_subject(subject: str) -> str:
    # decoded encoded-words can carry line breaks, which are illegal in a header
    subject = _LINE_BREAKS.sub(" ", subject)
    if subject.startswith(REPLY_PREFIX):
        return subject
    return f"{REPLY_PREFIX} {subject}"


def build_reply(metadata: MessageMetadata, body: str, sender: str | None = None) -> ReplyDraft:
    """Validate headers and build the draft answering ``metadata``."""

    if metadata.subject is None:
        raise HeaderMissing(metadata.id, "Subject")
    if metadata.sender is None:
        raise HeaderMissing(metadata.id, "From")
    return ReplyDraft(
        to=extract_reply_address(metadata.sender),
        subject=reply_subject(metadata.subject),
        body=body,
        in_reply_to=metadata.id,
        thread_id=metadata.thread_id,
        sender=sender,
    )


def render_reply(draft: ReplyDraft) -> bytes:
    try:
        return draft.as_bytes()
    except ValueError as exc:
        raise InvalidHeader(draft.in_reply_to, str(exc)) from exc


def encode_raw(raw: bytes) -> str:
    """Base64url-encode ``raw`` without trailing padding, as Gmail expects."""

    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_raw(encoded: str) -> bytes:
    padding = "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(encoded + padding)
