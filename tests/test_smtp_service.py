from __future__ import annotations

import smtplib

import pytest

from services.errors import DeliveryError
from services.smtp_service import SmtpBlaster
from utils.config import SmtpConfig

SETTINGS = SmtpConfig(
    host="smtp.test",
    port=2525,
    username="user",
    password="pass",
    starttls=True,
    sender="sender@example.com",
)


class FakeSMTP:
    def __init__(self, host, port, timeout=None, reject=(), fail_login=False):
        self.host = host
        self.port = port
        self.reject = set(reject)
        self.fail_login = fail_login
        self.sent = []
        self.tls = False
        self.login_args = None
        self.closed = False

    def starttls(self):
        self.tls = True

    def login(self, username, password):
        if self.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")
        self.login_args = (username, password)

    def send_message(self, message):
        if message["To"] in self.reject:
            raise smtplib.SMTPRecipientsRefused({message["To"]: (550, b"no such user")})
        self.sent.append(message)

    def quit(self):
        self.closed = True

    def close(self):
        self.closed = True


def _blaster(connections, sleeps, **smtp_kwargs):
    def factory(host, port, timeout=None):
        smtp = FakeSMTP(host, port, timeout, **smtp_kwargs)
        connections.append(smtp)
        return smtp

    return SmtpBlaster(
        SETTINGS,
        subject="Sending Email {index}",
        body="That was easy! {index}",
        spacing=1.0,
        smtp_factory=factory,
        sleep=sleeps.append,
    )


def test_blast_sends_each_recipient_in_order() -> None:
    connections, sleeps = [], []

    result = _blaster(connections, sleeps).blast(["a@x.com", "b@x.com", "c@x.com"])

    assert result.sent == ["a@x.com", "b@x.com", "c@x.com"]
    smtp = connections[0]
    assert smtp.tls
    assert smtp.login_args == ("user", "pass")
    assert [message.get_content().strip() for message in smtp.sent] == [
        "That was easy! 0",
        "That was easy! 1",
        "That was easy! 2",
    ]
    assert smtp.sent[1]["Subject"] == "Sending Email 1"
    assert smtp.sent[0]["From"] == "sender@example.com"
    assert sleeps == [1.0, 1.0]
    assert smtp.closed


def test_rejected_recipient_does_not_stop_blast() -> None:
    connections, sleeps = [], []

    result = _blaster(connections, sleeps, reject={"b@x.com"}).blast(["a@x.com", "b@x.com", "c@x.com"])

    assert result.sent == ["a@x.com", "c@x.com"]
    assert list(result.failed) == ["b@x.com"]


def test_login_failure_raises_delivery_error() -> None:
    connections, sleeps = [], []

    with pytest.raises(DeliveryError):
        _blaster(connections, sleeps, fail_login=True).blast(["a@x.com"])
    assert connections[0].closed


def test_unreachable_relay_raises_delivery_error() -> None:
    def refuse(host, port, timeout=None):
        raise ConnectionRefusedError("refused")

    blaster = SmtpBlaster(SETTINGS, subject="s", body="b", smtp_factory=refuse, sleep=lambda _: None)

    with pytest.raises(DeliveryError):
        blaster.blast(["a@x.com"])


def test_empty_recipient_list_does_not_connect() -> None:
    connections, sleeps = [], []

    result = _blaster(connections, sleeps).blast([])

    assert result.sent == []
    assert connections == []


def test_templates_keep_literal_braces() -> None:
    connections = []

    def factory(host, port, timeout=None):
        smtp = FakeSMTP(host, port, timeout)
        connections.append(smtp)
        return smtp

    blaster = SmtpBlaster(
        SETTINGS,
        subject="Report {index} for {team}",
        body='Payload: {"k": 1} #{index}',
        spacing=0,
        smtp_factory=factory,
    )

    result = blaster.blast(["a@x.com", "b@x.com"])

    assert result.sent == ["a@x.com", "b@x.com"]
    smtp = connections[0]
    assert smtp.sent[1]["Subject"] == "Report 1 for {team}"
    assert [message.get_content().strip() for message in smtp.sent] == [
        'Payload: {"k": 1} #0',
        'Payload: {"k": 1} #1',
    ]
