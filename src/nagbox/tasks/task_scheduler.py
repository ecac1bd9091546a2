# src/nagbox/tasks/task_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

Keeps the single external one-shot timer in sync with the store:
- nothing active -> timer cancelled,
- otherwise -> timer armed at min(next_fire_at) over active tasks.

The timer is allowed to fire within a small window after the target so the
platform can batch wake-ups. A target that is already in the past (the last
alarm batch could not be persisted, or a restored task was overdue) is pushed
to now + OVERDUE_RETRY_MS, so a failing store is retried instead of firing
back to back.
"""

import logging
from collections.abc import Callable

from ..core.ports import AlarmClock, TaskRepo
from ..core.time_utils import now_ms
from .errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_MS = 10_000
OVERDUE_RETRY_MS = 30_000


class ReminderScheduler:
    def __init__(
        self,
        store: TaskRepo,
        clock: AlarmClock,
        *,
        tolerance_ms: int = DEFAULT_TOLERANCE_MS,
        retry_ms: int = OVERDUE_RETRY_MS,
        now_fn: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._clock = clock
        self._tolerance_ms = max(0, int(tolerance_ms))
        self._retry_ms = max(1, int(retry_ms))
        self._now = now_fn

    @property
    def tolerance_ms(self) -> int:
        return self._tolerance_ms

    def rearm(self) -> int | None:
        """
        Recompute the next wake-up and arm or cancel the timer.

        Returns the armed timestamp, or None if the timer was cancelled or the store
        could not be queried (the timer is left as it was in that case).
        Idempotent: unchanged data re-arms the same target.
        """
        try:
            next_ts = self._store.closest_fire_at()
        except StoreError:
            logger.exception("closest_fire_at failed; keeping the current alarm")
            return None

        if next_ts is None:
            self._clock.cancel()
            logger.debug("No active tasks, alarm cancelled")
            return None

        now = self._now()
        if next_ts <= now:
            logger.warning(
                "Earliest reminder is overdue (at=%s now=%s); retrying in %sms", next_ts, now, self._retry_ms
            )
            next_ts = now + self._retry_ms

        self._clock.arm(next_ts, self._tolerance_ms)
        logger.debug("Alarm armed at=%s tolerance_ms=%s", next_ts, self._tolerance_ms)
        return next_ts
