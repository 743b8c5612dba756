from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict

LOGGER = logging.getLogger(__name__)
COUNTERS = ("poll_runs", "messages_seen", "replies_sent", "labels_applied", "failures", "blast_sent", "blast_failed")


class StatisticsService:
    """JSON file of running counters for the responder and the SMTP blast."""

    def __init__(self, stats_file: Path):
        self._stats_file = stats_file
        self._stats_file.parent.mkdir(parents=True, exist_ok=True)
        if not self._stats_file.exists() or not self._stats_file.read_text(encoding="utf-8").strip():
            self._write({})

    def _read(self) -> Dict[str, int]:
        try:
            return json.loads(self._stats_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            LOGGER.warning("Stats file was corrupt, resetting %s", self._stats_file)
            self._write({})
            return {}

    def _write(self, payload: Dict[str, int]) -> None:
        self._stats_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _bump(self, **increments: int) -> None:
        stats = self._read()
        for key, amount in increments.items():
            stats[key] = stats.get(key, 0) + amount
        self._write(stats)

    def record_poll(self, seen: int, replied: int, labeled: int, failures: int) -> None:
        self._bump(poll_runs=1, messages_seen=seen, replies_sent=replied, labels_applied=labeled, failures=failures)

    def record_blast(self, sent: int, failed: int) -> None:
        self._bump(blast_sent=sent, blast_failed=failed)

    def snapshot(self) -> Dict[str, int]:
        return self._read()
