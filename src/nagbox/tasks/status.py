# src/nagbox/tasks/status.py

"""
Status mutator.

Pure functions over Task snapshots: they never touch the store and never modify
the task they are given, they return an updated copy instead.
"""

from __future__ import annotations

from dataclasses import replace

from .errors import InvalidInterval
from .task_models import Task, TaskState


def state_of(task: Task) -> TaskState:
    if not task.active:
        return TaskState.INACTIVE
    return TaskState.ACTIVE_SEEN if task.seen else TaskState.ACTIVE_UNSEEN


def advance(task: Task, now: int) -> tuple[Task, bool]:
    """
    Push next_fire_at past `now` in whole intervals.

    Iterates instead of adding once because the alarm may have been delivered long
    after it was due (sleep, reboot). Post-condition: next_fire_at > now.

    Raises InvalidInterval for interval <= 0 instead of looping forever.
    """
    if task.interval <= 0:
        raise InvalidInterval(task.id, task.interval)

    step = task.interval_ms
    next_fire_at = task.next_fire_at
    while next_fire_at <= now:
        next_fire_at += step

    if next_fire_at == task.next_fire_at:
        return task, False
    return replace(task, next_fire_at=next_fire_at), True


def start(task: Task, now: int) -> Task:
    """INACTIVE -> ACTIVE_SEEN. First reminder comes one interval from now."""
    if task.interval <= 0:
        raise InvalidInterval(task.id, task.interval)
    return replace(
        task,
        active=True,
        seen=True,
        next_fire_at=now + task.interval_ms,
        last_started_at=now,
    )


def stop(task: Task) -> Task:
    """Any state -> INACTIVE. A stopped task has nothing left to acknowledge."""
    return replace(task, active=False, seen=True)


def mark_seen(task: Task) -> tuple[Task, bool]:
    if task.seen:
        return task, False
    return replace(task, seen=True), True


def mark_unseen(task: Task) -> tuple[Task, bool]:
    if not task.seen:
        return task, False
    return replace(task, seen=False), True
