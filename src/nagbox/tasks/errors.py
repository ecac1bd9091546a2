# src/nagbox/tasks/errors.py

from __future__ import annotations


class NagboxError(Exception):
    """Base class for errors raised by the reminder engine."""


class InvalidInterval(NagboxError):
    """A task with interval <= 0 reached code that needs a positive interval."""

    def __init__(self, task_id: int, interval: int) -> None:
        super().__init__(f"task {task_id} has non-positive interval {interval}")
        self.task_id = task_id
        self.interval = interval


class StoreError(NagboxError):
    """A store operation or transaction failed; nothing from it was persisted."""
