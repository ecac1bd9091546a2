# src/nagbox/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

NO_ID = -1
MINUTE_MS = 60_000
DEFAULT_INTERVAL_MINUTES = 5


class TaskState(StrEnum):
    """
    Status dimension of a task.

    Derived from (active, seen); it is never stored as such.
    """

    INACTIVE = "inactive"
    ACTIVE_UNSEEN = "active_unseen"
    ACTIVE_SEEN = "active_seen"


@dataclass(slots=True)
class Task:
    """
    A recurring reminder.

    Field groups:
    - description: title, interval (minutes)
    - status: active, seen, next_fire_at, last_started_at (ms since epoch)

    next_fire_at holds a meaningful value only while active.
    """

    title: str
    interval: int = DEFAULT_INTERVAL_MINUTES
    active: bool = False
    seen: bool = True
    next_fire_at: int = 0
    last_started_at: int = 0
    id: int = NO_ID

    @property
    def has_id(self) -> bool:
        return self.id >= 0

    @property
    def interval_ms(self) -> int:
        return int(self.interval) * MINUTE_MS
