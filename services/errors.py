from __future__ import annotations


class ResponderError(Exception):
    """Base class for every failure the responder reports."""


class AuthFailure(ResponderError):
    """Credentials could not be loaded, refreshed, or obtained."""


class ApiFailure(ResponderError):
    """A Gmail API call failed at the HTTP or transport level."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class LabelConflict(ApiFailure):
    """Label creation was rejected because the name is already taken."""

    def __init__(self, label_name: str):
        super().__init__(f"Label {label_name!r} already exists", status=409)
        self.label_name = label_name


class HeaderMissing(ResponderError):
    def __init__(self, message_id: str, header: str):
        super().__init__(f"Message {message_id} has no {header} header")
        self.message_id = message_id
        self.header = header


class AddressParseError(ResponderError):
    def __init__(self, value: str):
        super().__init__(f"No <address> found in From header: {value!r}")
        self.value = value


class DeliveryError(ResponderError):
    """The SMTP relay refused the connection or the login."""


class InvalidHeader(ResponderError):
    """A reply header value could not be rendered into the message."""

    def __init__(self, message_id: str, detail: str):
        super().__init__(f"Cannot build reply to {message_id}: {detail}")
        self.message_id = message_id
