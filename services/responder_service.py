from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.email_message import MessageRef
from models.label import DEFAULT_LABEL_NAME, INBOX_LABEL_ID
from services.errors import ResponderError
from services.gmail_service import GmailService
from services.persistence_service import RepliedStore
from services.reply_composer import DEFAULT_REPLY_BODY, DEFAULT_SIGNATURE, build_reply, encode_raw, render_reply

LOGGER = logging.getLogger(__name__)
# Processing attaches a user label, so labeled mail drops out of this query.
UNREPLIED_QUERY = "-in:chat -from:me -has:userlabels"


class FailurePolicy(str, Enum):
    ABORT = "abort"
    SKIP = "skip"


@dataclass(slots=True)
class MessageFailure:
    message_id: str
    error: ResponderError


@dataclass(slots=True)
class BatchResult:
    """Outcome of one poll over the unreplied set."""

    seen: int = 0
    replied: List[str] = field(default_factory=list)
    labeled: List[str] = field(default_factory=list)
    failures: List[MessageFailure] = field(default_factory=list)
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures


class Responder:
    """Auto-reply to unanswered mail and move it out of the inbox."""

    def __init__(
        self,
        gmail: GmailService,
        label_name: str = DEFAULT_LABEL_NAME,
        reply_body: str = DEFAULT_REPLY_BODY.format(signature=DEFAULT_SIGNATURE),
        replied_store: Optional[RepliedStore] = None,
        policy: FailurePolicy = FailurePolicy.ABORT,
        sender: str | None = None,
    ):
        self._gmail = gmail
        self._label_name = label_name
        self._reply_body = reply_body
        self._replied_store = replied_store
        self._policy = policy
        self._sender = sender
        self._label_id: str | None = None

    @property
    def label_id(self) -> str:
        if self._label_id is None:
            self._label_id = self._gmail.ensure_label(self._label_name)
            LOGGER.info("Using label %s (%s)", self._label_name, self._label_id)
        return self._label_id

    def list_unreplied(self) -> List[MessageRef]:
        messages = self._gmail.list_messages(UNREPLIED_QUERY)
        LOGGER.info("Unreplied messages: %s", len(messages))
        return messages

    def reply(self, message: MessageRef) -> str:
        metadata = self._gmail.get_message_headers(message.id, ("Subject", "From"))
        draft = build_reply(metadata, self._reply_body, sender=self._sender)
        sent_id = self._gmail.send_raw(encode_raw(render_reply(draft)), thread_id=draft.thread_id)
        LOGGER.info("Replied to %s (%s) as %s", message.id, draft.to, sent_id)
        return sent_id

    def mark_processed(self, message: MessageRef, label_id: str) -> None:
        self._gmail.modify_labels(message.id, add_label_ids=[label_id], remove_label_ids=[INBOX_LABEL_ID])
        LOGGER.info("Added label to %s", message.id)

    def _handle(self, message: MessageRef, label_id: str, result: BatchResult) -> None:
        if self._replied_store is not None and self._replied_store.was_replied(message.id):
            LOGGER.warning("Already replied to %s, only relabeling", message.id)
        else:
            self.reply(message)
            result.replied.append(message.id)
            if self._replied_store is not None:
                self._replied_store.mark_replied(message.id)
        self.mark_processed(message, label_id)
        result.labeled.append(message.id)

    def process_batch(self) -> BatchResult:
        """Reply to and label every unreplied message, one at a time."""

        result = BatchResult()
        label_id = self.label_id
        messages = self.list_unreplied()
        result.seen = len(messages)
        for message in messages:
            try:
                self._handle(message, label_id, result)
            except ResponderError as exc:
                LOGGER.error("Processing %s failed: %s", message.id, exc)
                result.failures.append(MessageFailure(message.id, exc))
                if self._policy is FailurePolicy.ABORT:
                    result.aborted = True
                    LOGGER.warning("Aborting batch; %s message(s) left for the next poll", result.seen - len(result.labeled) - 1)
                    break
        return result
