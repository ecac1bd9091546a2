# src/nagbox/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- builds the store, timer, notifiers and engine service explicitly and wires them
  into AppState.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier
from ..connectors.matrix_connector import MatrixNotifier, room_allowlist
from ..connectors.notifiers import MultiNotifier
from ..core.alarm_clock import ThreadingAlarmClock
from ..core.ports import Notifier
from ..core.state import AppState
from ..tasks.task_service import NagService
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    state: AppState
    clock: ThreadingAlarmClock
    matrix_notifier: MatrixNotifier | None


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    if settings.matrix_enabled:
        settings.matrix_store_path.mkdir(parents=True, exist_ok=True)


def create_runtime(*, settings=None) -> Runtime:
    """
    Build everything the process needs, without starting any thread.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    notifiers: list[Notifier] = []
    if settings.console_enabled:
        notifiers.append(ConsoleNotifier(app_name=settings.app_name))

    matrix_notifier: MatrixNotifier | None = None
    if settings.matrix_enabled:
        matrix_notifier = MatrixNotifier(
            app_name=settings.app_name,
            notify_room=settings.matrix_notify_room,
            allowed_rooms=room_allowlist(settings.matrix_rooms),
        )
        notifiers.append(matrix_notifier)

    if not notifiers:
        logger.warning("No notification connector enabled; reminders will only be logged.")

    store = TaskStore(settings.tasks_db_path, starter_titles=settings.starter_tasks)
    clock = ThreadingAlarmClock()
    service = NagService(
        store,
        clock,
        MultiNotifier(notifiers),
        tolerance_ms=settings.alarm_tolerance_ms,
    )
    # The timer thread only enqueues; the engine worker does the actual work.
    clock.set_listener(service.on_alarm_fired)

    state = AppState(settings=settings, task_store=store, service=service)
    return Runtime(state=state, clock=clock, matrix_notifier=matrix_notifier)
