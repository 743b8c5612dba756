from __future__ import annotations

import logging
from typing import Callable

from flask import Flask

from services.errors import ResponderError
from services.gmail_service import GmailService
from utils.config import NotificationConfig

LOGGER = logging.getLogger(__name__)


def create_app(mailer_factory: Callable[[], GmailService], notification: NotificationConfig) -> Flask:
    """Build the HTTP surface; ``mailer_factory`` is called once per request."""

    app = Flask(__name__)

    @app.get("/")
    def index():
        return "Success !!!"

    @app.get("/send-email")
    def send_email():
        try:
            mailer = mailer_factory()
            mailer.send_email(notification.to, notification.subject, notification.body)
        except ResponderError as exc:
            LOGGER.error("Error sending email: %s", exc)
            return "Error sending email", 500
        return f"Email sent successfully to: {notification.to}"

    return app
