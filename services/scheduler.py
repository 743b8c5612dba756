from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Optional

import schedule

from services.errors import ResponderError

LOGGER = logging.getLogger(__name__)
MIN_DELAY_SECONDS = 45
MAX_DELAY_SECONDS = 120


class PollingDriver:
    """Run ``job`` forever, drawing a fresh random delay before every fire."""

    def __init__(
        self,
        job: Callable[[], Any],
        min_seconds: int = MIN_DELAY_SECONDS,
        max_seconds: int = MAX_DELAY_SECONDS,
        rng: Optional[random.Random] = None,
        scheduler: Optional[schedule.Scheduler] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_result: Optional[Callable[[Any], None]] = None,
    ):
        if min_seconds <= 0 or max_seconds < min_seconds:
            raise ValueError(f"Invalid delay window [{min_seconds}, {max_seconds}]")
        self._job = job
        self._min_seconds = min_seconds
        self._max_seconds = max_seconds
        self._rng = rng or random.Random()
        self._scheduler = scheduler or schedule.Scheduler()
        self._sleep = sleep
        self._on_result = on_result
        self._armed: Optional[schedule.Job] = None

    @property
    def scheduler(self) -> schedule.Scheduler:
        return self._scheduler

    def next_delay(self) -> int:
        return self._rng.randint(self._min_seconds, self._max_seconds)

    def tick(self) -> Any:
        """Run the job once; responder failures are logged, not raised."""

        try:
            result = self._job()
        except ResponderError as exc:
            LOGGER.error("Poll failed: %s", exc)
            return None
        if self._on_result is not None:
            self._on_result(result)
        return result

    def arm(self) -> schedule.Job:
        delay = self.next_delay()
        LOGGER.debug("Next poll in %s seconds", delay)
        self._armed = self._scheduler.every(delay).seconds.do(self._fire)
        return self._armed

    def _fire(self) -> Any:
        current = self._armed
        try:
            self.tick()
        finally:
            # drop this job even when tick raises, so only the new one stays armed
            if current is not None:
                self._scheduler.cancel_job(current)
            self.arm()
        return schedule.CancelJob

    def run_forever(self) -> None:
        self.arm()
        while True:
            self._scheduler.run_pending()
            self._sleep(1)
