from __future__ import annotations

import base64
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from models.label import DEFAULT_LABEL_NAME
from services.reply_composer import DEFAULT_REPLY_BODY, DEFAULT_SIGNATURE

PROJECT_ROOT = Path(__file__).resolve().parent.parent
FAILURE_POLICIES = ("abort", "skip")


@dataclass(slots=True)
class AccountConfig:
    name: str
    credentials_file: Path
    token_file: Path
    user_id: str


@dataclass(slots=True)
class SmtpConfig:
    host: str
    port: int
    username: Optional[str]
    password: Optional[str]
    starttls: bool
    sender: str


@dataclass(slots=True)
class NotificationConfig:
    """Fixed message sent by the ``/send-email`` endpoint and ``send`` command."""

    to: str
    subject: str
    body: str


@dataclass(slots=True)
class BlastConfig:
    recipients: List[str]
    subject: str
    body: str
    spacing: float


@dataclass(slots=True)
class AppConfig:
    account: AccountConfig
    log_dir: Path
    log_level: str
    db_path: Path
    stats_file: Path
    label_name: str
    poll_min_seconds: int
    poll_max_seconds: int
    reply_body: str
    reply_from: Optional[str]
    failure_policy: str
    http_host: str
    http_port: int
    notification: NotificationConfig
    smtp: SmtpConfig
    blast: BlastConfig


def _resolve_path(value: str | None, fallback: str) -> Path:
    candidate = Path(value or fallback)
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    return candidate


def _maybe_write_secret_file(target: Path, inline_value: str | None, b64_value: str | None) -> None:
    if not inline_value and not b64_value:
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    if inline_value:
        target.write_text(inline_value, encoding="utf-8")
        return
    try:
        decoded = base64.b64decode(b64_value or "", validate=True)
    except ValueError as exc:
        raise ValueError("Failed to decode base64 secret payload") from exc
    target.write_bytes(decoded)


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


def _bool_env(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _list_env(key: str) -> List[str]:
    raw = os.getenv(key, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_config(env_file: str | os.PathLike[str] | None = None) -> AppConfig:
    """Load configuration values from a .env file and environment variables."""

    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    credentials_file = _resolve_path(os.getenv("GOOGLE_CLIENT_SECRETS"), "credentials.json")
    token_file = _resolve_path(os.getenv("GOOGLE_TOKEN_PATH"), "token.json")
    log_dir = _resolve_path(os.getenv("LOG_DIR"), "logs")
    stats_file = _resolve_path(os.getenv("STATS_FILE"), "data/stats.json")
    db_path = _resolve_path(os.getenv("DB_PATH"), "data/mail_responder.db")

    log_dir.mkdir(parents=True, exist_ok=True)
    stats_file.parent.mkdir(parents=True, exist_ok=True)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _maybe_write_secret_file(
        credentials_file,
        os.getenv("GOOGLE_CLIENT_SECRETS_JSON"),
        os.getenv("GOOGLE_CLIENT_SECRETS_B64"),
    )
    _maybe_write_secret_file(
        token_file,
        os.getenv("GOOGLE_TOKEN_JSON"),
        os.getenv("GOOGLE_TOKEN_B64"),
    )

    poll_min = _int_env("POLL_MIN_SECONDS", 45)
    poll_max = _int_env("POLL_MAX_SECONDS", 120)
    if poll_min <= 0 or poll_max < poll_min:
        raise ValueError(f"Invalid polling window [{poll_min}, {poll_max}]")

    failure_policy = os.getenv("FAILURE_POLICY", "abort").strip().lower()
    if failure_policy not in FAILURE_POLICIES:
        raise ValueError(f"FAILURE_POLICY must be one of {', '.join(FAILURE_POLICIES)}, got {failure_policy!r}")

    # dotenv leaves literal "\n" in unquoted values
    reply_template = os.getenv("REPLY_BODY", DEFAULT_REPLY_BODY).replace("\\n", "\n")
    reply_body = reply_template.replace("{signature}", os.getenv("REPLY_SIGNATURE", DEFAULT_SIGNATURE))

    account = AccountConfig(
        name=os.getenv("GMAIL_ACCOUNT_NAME", "default"),
        credentials_file=credentials_file,
        token_file=token_file,
        user_id=os.getenv("GMAIL_USER_ID", "me"),
    )

    smtp = SmtpConfig(
        host=os.getenv("SMTP_HOST", "sandbox.smtp.mailtrap.io"),
        port=_int_env("SMTP_PORT", 2525),
        username=os.getenv("SMTP_USERNAME") or None,
        password=os.getenv("SMTP_PASSWORD") or None,
        starttls=_bool_env("SMTP_STARTTLS", True),
        sender=os.getenv("SMTP_FROM", "noreply@example.com"),
    )

    return AppConfig(
        account=account,
        log_dir=log_dir,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        db_path=db_path,
        stats_file=stats_file,
        label_name=os.getenv("RESPONDER_LABEL", DEFAULT_LABEL_NAME),
        poll_min_seconds=poll_min,
        poll_max_seconds=poll_max,
        reply_body=reply_body,
        reply_from=os.getenv("REPLY_FROM") or None,
        failure_policy=failure_policy,
        http_host=os.getenv("HTTP_HOST", "127.0.0.1"),
        http_port=_int_env("HTTP_PORT", 3001),
        notification=NotificationConfig(
            to=os.getenv("NOTIFY_TO", "you@example.com"),
            subject=os.getenv("NOTIFY_SUBJECT", "Test email"),
            body=os.getenv("NOTIFY_BODY", "This is a test email sent with the Gmail API."),
        ),
        smtp=smtp,
        blast=BlastConfig(
            recipients=_list_env("BLAST_RECIPIENTS"),
            subject=os.getenv("BLAST_SUBJECT", "Sending Email using Python"),
            body=os.getenv("BLAST_BODY", "That was easy! {index}"),
            spacing=_float_env("BLAST_SPACING", 1.0),
        ),
    )
