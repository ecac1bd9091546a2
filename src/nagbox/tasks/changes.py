# src/nagbox/tasks/changes.py

from __future__ import annotations

import logging
import threading

from ..core.ports import ChangeListener

logger = logging.getLogger(__name__)


class ChangeNotifier:
    """
    One-way "something changed" signal for views that mirror the store.

    notify(task_id) after a persisted mutation of one task, notify(None) for a
    collection-wide change (e.g. a new task). Listener failures are logged and
    never reach the caller.
    """

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def notify(self, task_id: int | None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(task_id)
            except Exception:
                logger.exception("Change listener failed task_id=%s", task_id)
