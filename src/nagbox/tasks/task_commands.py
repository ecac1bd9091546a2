# src/nagbox/tasks/task_commands.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .task_models import Task


class CommandKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SET_ACTIVE = "set_active"
    DELETE = "delete"
    RESTORE = "restore"
    ALARM_FIRED = "alarm_fired"
    DISMISS = "dismiss"
    STOP = "stop"


@dataclass(slots=True, frozen=True)
class TaskCommand:
    """
    One unit of work for the engine queue.

    Which payload field is used depends on kind:
    - CREATE / UPDATE / RESTORE: task
    - SET_ACTIVE: task_id + active
    - DELETE / STOP: task_id
    - DISMISS: task_id (None = every unseen task)
    - ALARM_FIRED: nothing
    """

    kind: CommandKind
    task: Task | None = None
    task_id: int | None = None
    active: bool = False
