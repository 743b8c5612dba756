from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RepliedRecord:
    account: str
    message_id: str
    replied_at: datetime


class RepliedStore:
    """SQLite-backed record of Gmail messages that already received a reply."""

    def __init__(self, db_path: Path, account: str = "default"):
        self._db_path = db_path
        self._account = account
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS replied_messages (
                    account TEXT NOT NULL,
                    message_id TEXT NOT NULL,
                    replied_at TEXT NOT NULL,
                    PRIMARY KEY (account, message_id)
                )
                """
            )

    def was_replied(self, message_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM replied_messages WHERE account=? AND message_id=?",
                (self._account, message_id),
            ).fetchone()
        return row is not None

    def mark_replied(self, message_id: str) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO replied_messages(account, message_id, replied_at)
                VALUES (?, ?, ?)
                """,
                (self._account, message_id, timestamp),
            )
        LOGGER.debug("Recorded reply to %s for account %s", message_id, self._account)

    def recent_entries(self, limit: int = 10) -> list[RepliedRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT account, message_id, replied_at FROM replied_messages
                WHERE account=? ORDER BY replied_at DESC LIMIT ?
                """,
                (self._account, limit),
            ).fetchall()
        return [RepliedRecord(row[0], row[1], datetime.fromisoformat(row[2])) for row in rows]
