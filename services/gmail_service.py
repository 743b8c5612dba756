from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from models.email_message import MessageMetadata, MessageRef
from models.label import Label
from models.reply_draft import build_plain_message
from services.errors import ApiFailure, AuthFailure, LabelConflict
from services.reply_composer import encode_raw

LOGGER = logging.getLogger(__name__)
CONFLICT = 409


class GmailService:
    """Wrapper around the Gmail API for the operations we need."""

    def __init__(self, client: Any, user_id: str = "me"):
        self._client = client
        self._user_id = user_id

    @classmethod
    def from_credentials(cls, creds: Credentials, user_id: str = "me") -> "GmailService":
        return cls(build("gmail", "v1", credentials=creds, cache_discovery=False), user_id)

    @property
    def user_id(self) -> str:
        return self._user_id

    def _execute(self, request: Any, action: str) -> Dict:
        try:
            return request.execute()
        except HttpError as exc:
            LOGGER.error("Gmail API failed to %s: %s", action, exc)
            raise ApiFailure(f"Failed to {action}: {exc.reason}", status=exc.resp.status) from exc
        except RefreshError as exc:
            raise AuthFailure(f"Gmail token rejected while trying to {action}: {exc}") from exc
        except (TransportError, httplib2.HttpLib2Error, OSError) as exc:
            LOGGER.error("Transport error while trying to %s: %s", action, exc)
            raise ApiFailure(f"Failed to {action}: {exc}") from exc

    def create_label(self, name: str) -> Label:
        body = {"name": name, "labelListVisibility": "labelShow", "messageListVisibility": "show"}
        request = self._client.users().labels().create(userId=self.user_id, body=body)
        try:
            response = self._execute(request, f"create label {name}")
        except ApiFailure as exc:
            if exc.status == CONFLICT:
                raise LabelConflict(name) from exc
            raise
        LOGGER.info("Created label %s with id %s", name, response["id"])
        return Label.from_api(response)

    def list_labels(self) -> List[Label]:
        request = self._client.users().labels().list(userId=self.user_id)
        response = self._execute(request, "list labels")
        return [Label.from_api(item) for item in response.get("labels", [])]

    def ensure_label(self, name: str) -> str:
        """Create ``name`` or, if Gmail reports it exists, look up its id."""

        try:
            return self.create_label(name).id
        except LabelConflict:
            LOGGER.debug("Label %s already exists, resolving its id", name)
        for label in self.list_labels():
            if label.name == name:
                return label.id
        raise ApiFailure(f"Label {name!r} reported as existing but was not listed", status=CONFLICT)

    def list_messages(self, query: str) -> List[MessageRef]:
        """Return the first page of messages matching ``query``."""

        request = self._client.users().messages().list(userId=self.user_id, q=query)
        response = self._execute(request, "list messages")
        if response.get("nextPageToken"):
            LOGGER.warning("More messages match %r than one page; the rest wait for a later poll", query)
        return [MessageRef.from_api(item) for item in response.get("messages", [])]

    def get_message_headers(self, message_id: str, header_names: Sequence[str] = ("Subject", "From")) -> MessageMetadata:
        request = (
            self._client.users()
            .messages()
            .get(userId=self.user_id, id=message_id, format="metadata", metadataHeaders=list(header_names))
        )
        response = self._execute(request, f"fetch message {message_id}")
        headers = _headers_to_dict(response.get("payload", {}).get("headers", []))
        return MessageMetadata(
            id=response.get("id", message_id),
            thread_id=response.get("threadId"),
            subject=headers.get("subject"),
            sender=headers.get("from"),
        )

    def send_raw(self, raw: str, thread_id: str | None = None) -> str:
        body: Dict[str, str] = {"raw": raw}
        if thread_id:
            body["threadId"] = thread_id
        request = self._client.users().messages().send(userId=self.user_id, body=body)
        response = self._execute(request, "send message")
        return response.get("id", "")

    def send_email(self, to: str, subject: str, body: str, sender: str | None = None) -> str:
        message = build_plain_message(to, subject, body, sender=sender)
        message_id = self.send_raw(encode_raw(message.as_bytes()))
        LOGGER.info("Email sent successfully to: %s", to)
        return message_id

    def modify_labels(
        self,
        message_id: str,
        add_label_ids: Sequence[str] = (),
        remove_label_ids: Sequence[str] = (),
    ) -> Dict:
        body = {"addLabelIds": list(add_label_ids), "removeLabelIds": list(remove_label_ids)}
        request = self._client.users().messages().modify(userId=self.user_id, id=message_id, body=body)
        response = self._execute(request, f"modify labels on {message_id}")
        LOGGER.debug("Labels on %s: +%s -%s", message_id, list(add_label_ids), list(remove_label_ids))
        return response


def _headers_to_dict(headers: Sequence[Dict[str, str]]) -> Dict[str, str]:
    mapped: Dict[str, str] = {}
    for header in headers:
        name = header.get("name", "").lower()
        mapped.setdefault(name, header.get("value", ""))
    return mapped
