# src/nagbox/core/alarm_clock.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Optional

from .time_utils import now_ms

logger = logging.getLogger(__name__)


class ThreadingAlarmClock:
    """
    In-process one-shot timer backed by threading.Timer.

    - at most one timer is armed at any time; arm() replaces the previous one,
    - an armed timer is kept if it already fires inside [at_ms, at_ms + tolerance_ms]
      (same batching freedom a platform alarm service has),
    - never fires before the requested time,
    - on fire, calls the listener from the timer thread. The listener should only
      hand the event over (e.g. enqueue a command) and return.

    State lives only in memory: after a restart the owner must re-arm from the store.
    """

    def __init__(
        self,
        listener: Callable[[], None] | None = None,
        *,
        now_fn: Callable[[], int] = now_ms,
    ) -> None:
        self._listener = listener
        self._now = now_fn
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._armed_at: int | None = None

    def set_listener(self, listener: Callable[[], None]) -> None:
        self._listener = listener

    @property
    def armed_at(self) -> int | None:
        with self._lock:
            return self._armed_at

    def arm(self, at_ms: int, tolerance_ms: int) -> None:
        with self._lock:
            if self._armed_at is not None and at_ms <= self._armed_at <= at_ms + max(0, tolerance_ms):
                return

            self._cancel_locked()
            delay_s = max(0, int(at_ms) - self._now()) / 1000.0
            timer = threading.Timer(delay_s, self._fire, args=(int(at_ms),))
            timer.daemon = True
            self._timer = timer
            self._armed_at = int(at_ms)
            timer.start()
        logger.debug("Timer armed at=%s (in %.1fs)", at_ms, delay_s)

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._armed_at = None

    def _fire(self, at_ms: int) -> None:
        with self._lock:
            # Replaced or cancelled after this timer had already started running.
            if self._armed_at != at_ms:
                return
            self._timer = None
            self._armed_at = None

        listener = self._listener
        if listener is None:
            logger.warning("Timer fired at=%s but nobody is listening", at_ms)
            return
        try:
            listener()
        except Exception:
            logger.exception("Timer listener failed")
