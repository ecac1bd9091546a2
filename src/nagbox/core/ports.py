# src/nagbox/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the reminder engine.

The engine depends on Protocols instead of concrete implementations.
This keeps the store, the timer and the notification transport swappable
and makes testing easier.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Protocol, Sequence

from ..tasks.task_models import Task

ChangeListener = Callable[[int | None], None]
# Receives the id of the changed task, or None for a collection-wide change.


class TaskTransactionOps(Protocol):
    def get_task(self, task_id: int) -> Task | None: ...
    def query_due(self, now: int) -> list[Task]: ...
    def list_unseen(self) -> list[Task]: ...

    def create_task(self, task: Task) -> int: ...
    def restore_task(self, task: Task) -> None: ...
    def update_task(self, task: Task) -> None: ...
    def update_task_status(self, task: Task) -> None: ...
    def delete_task(self, task_id: int) -> None: ...


class TaskRepo(Protocol):
    """
    Durable task records.

    Every mutation goes through transaction(); the repo is the only arbiter of
    serializability, the engine never locks in memory.
    """

    def transaction(self) -> AbstractContextManager[TaskTransactionOps]: ...

    def get_task(self, task_id: int) -> Task | None: ...
    def list_tasks(self) -> list[Task]: ...
    def query_due(self, now: int) -> list[Task]: ...
    def closest_fire_at(self) -> int | None: ...


class AlarmClock(Protocol):
    """
    The single external one-shot timer.

    arm() replaces whatever was armed before. Delivery is at-least-once and may be
    late (sleep, restart); it is never expected to be early.
    """

    def arm(self, at_ms: int, tolerance_ms: int) -> None: ...
    def cancel(self) -> None: ...


class Notifier(Protocol):
    """
    Notification display.

    Receives the whole due set at once; single vs. multi-task presentation is the
    notifier's business.
    """

    def show_batch(self, tasks: Sequence[Task]) -> None: ...
