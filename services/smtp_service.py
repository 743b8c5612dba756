from __future__ import annotations

import logging
import smtplib
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

from models.reply_draft import build_plain_message
from services.errors import DeliveryError
from utils.config import SmtpConfig

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class BlastResult:
    sent: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


class SmtpBlaster:
    """Send one templated message per recipient through an SMTP relay."""

    def __init__(
        self,
        settings: SmtpConfig,
        subject: str,
        body: str,
        spacing: float = 1.0,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._settings = settings
        self._subject = subject
        self._body = body
        self._spacing = spacing
        self._smtp_factory = smtp_factory
        self._sleep = sleep

    def _connect(self) -> smtplib.SMTP:
        try:
            smtp = self._smtp_factory(self._settings.host, self._settings.port, timeout=30)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"Cannot reach {self._settings.host}:{self._settings.port}: {exc}") from exc
        try:
            if self._settings.starttls:
                smtp.starttls()
            if self._settings.username:
                smtp.login(self._settings.username, self._settings.password or "")
        except (smtplib.SMTPException, OSError) as exc:
            smtp.close()
            raise DeliveryError(f"SMTP handshake with {self._settings.host} failed: {exc}") from exc
        return smtp

    def blast(self, recipients: Sequence[str]) -> BlastResult:
        result = BlastResult()
        if not recipients:
            LOGGER.info("No recipients to send to")
            return result

        smtp = self._connect()
        try:
            for index, recipient in enumerate(recipients):
                if index and self._spacing > 0:
                    self._sleep(self._spacing)
                message = build_plain_message(
                    recipient,
                    self._subject.replace("{index}", str(index)),
                    self._body.replace("{index}", str(index)),
                    sender=self._settings.sender,
                )
                try:
                    smtp.send_message(message)
                except smtplib.SMTPException as exc:
                    LOGGER.error("Error sending to %s: %s", recipient, exc)
                    result.failed[recipient] = str(exc)
                    continue
                LOGGER.info("Email sent to %s", recipient)
                result.sent.append(recipient)
        finally:
            try:
                smtp.quit()
            except smtplib.SMTPException:
                smtp.close()
        return result
