# src/nagbox/tasks/task_service.py

from __future__ import annotations

"""
Engine facade.

Public methods (create_task, set_active, dismiss, ...) only enqueue a command and
return immediately; a single worker executes them in order. Completion is
observable through the ChangeNotifier, not through return values.

execute() runs a command synchronously on the calling thread; the worker uses it,
and so can tests.
"""

import logging
from collections.abc import Callable

from ..core.ports import AlarmClock, Notifier, TaskRepo
from ..core.time_utils import now_ms
from .alarm_handler import AlarmHandler
from .changes import ChangeNotifier
from .command_queue import CommandQueue
from .dismissal import DismissalHandler
from .errors import InvalidInterval, NagboxError, StoreError
from .status import start, stop
from .task_commands import CommandKind, TaskCommand
from .task_models import Task
from .task_scheduler import DEFAULT_TOLERANCE_MS, ReminderScheduler

logger = logging.getLogger(__name__)


class NagService:
    def __init__(
        self,
        store: TaskRepo,
        clock: AlarmClock,
        notifier: Notifier,
        *,
        tolerance_ms: int = DEFAULT_TOLERANCE_MS,
        now_fn: Callable[[], int] = now_ms,
        changes: ChangeNotifier | None = None,
    ) -> None:
        self.store = store
        self.changes = changes or ChangeNotifier()
        self.scheduler = ReminderScheduler(store, clock, tolerance_ms=tolerance_ms, now_fn=now_fn)
        self.alarm_handler = AlarmHandler(store, notifier, self.scheduler, self.changes, now_fn=now_fn)
        self.dismissal = DismissalHandler(store, self.scheduler, self.changes)

        self._clock = clock
        self._now = now_fn
        self._queue = CommandQueue(self.execute)

        self._handlers: dict[CommandKind, Callable[[TaskCommand], None]] = {
            CommandKind.CREATE: self._handle_create,
            CommandKind.UPDATE: self._handle_update,
            CommandKind.SET_ACTIVE: self._handle_set_active,
            CommandKind.DELETE: self._handle_delete,
            CommandKind.RESTORE: self._handle_restore,
            CommandKind.ALARM_FIRED: self._handle_alarm_fired,
            CommandKind.DISMISS: self._handle_dismiss,
            CommandKind.STOP: self._handle_stop,
        }

    # ---- lifecycle ----

    def start(self, *, boot_check: bool = True) -> None:
        """
        Start the worker. With boot_check, immediately catch up on anything that
        became due while the process was not running.
        """
        self._queue.start()
        if boot_check:
            self.check_now()

    def shutdown(self) -> None:
        self._queue.stop()
        self._clock.cancel()

    def join(self) -> None:
        self._queue.join()

    # ---- non-blocking submission ----

    def submit(self, command: TaskCommand) -> None:
        self._queue.submit(command)

    def create_task(self, task: Task) -> None:
        self.submit(TaskCommand(CommandKind.CREATE, task=task))

    def update_task(self, task: Task) -> None:
        """Change title/interval. Does not touch status and does not reschedule."""
        self.submit(TaskCommand(CommandKind.UPDATE, task=task))

    def set_active(self, task_id: int, active: bool) -> None:
        self.submit(TaskCommand(CommandKind.SET_ACTIVE, task_id=task_id, active=active))

    def delete_task(self, task_id: int) -> None:
        self.submit(TaskCommand(CommandKind.DELETE, task_id=task_id))

    def restore_task(self, task: Task) -> None:
        self.submit(TaskCommand(CommandKind.RESTORE, task=task))

    def on_alarm_fired(self) -> None:
        self.submit(TaskCommand(CommandKind.ALARM_FIRED))

    check_now = on_alarm_fired

    def dismiss(self, task_id: int | None = None) -> None:
        self.submit(TaskCommand(CommandKind.DISMISS, task_id=task_id))

    def stop_task(self, task_id: int) -> None:
        self.submit(TaskCommand(CommandKind.STOP, task_id=task_id))

    # ---- execution ----

    def execute(self, command: TaskCommand) -> None:
        handler = self._handlers.get(command.kind)
        if handler is None:
            logger.error("No handler for command kind=%s", command.kind)
            return
        try:
            handler(command)
        except NagboxError:
            logger.exception("Command failed kind=%s", command.kind.value)

    def _handle_create(self, command: TaskCommand) -> None:
        task = command.task
        if task is None:
            logger.error("CREATE without a task")
            return
        if task.interval <= 0:
            raise InvalidInterval(task.id, task.interval)

        if task.active:
            task = start(task, self._now())

        try:
            with self.store.transaction() as tx:
                task_id = tx.create_task(task)
        except StoreError:
            logger.exception("Couldn't create task %r", task.title)
            return

        logger.info("Task %s created title=%r active=%s", task_id, task.title, task.active)
        self.changes.notify(None)
        if task.active:
            self.scheduler.rearm()

    def _handle_update(self, command: TaskCommand) -> None:
        task = command.task
        if task is None or not task.has_id:
            logger.error("Was trying to update task with invalid/unset ID=%s", getattr(task, "id", None))
            return
        if task.interval <= 0:
            raise InvalidInterval(task.id, task.interval)

        try:
            with self.store.transaction() as tx:
                tx.update_task(task)
        except StoreError:
            logger.exception("Couldn't update task %s", task.id)
            return

        # Interval changes on an active task take effect after its next fire.
        self.changes.notify(task.id)

    def _handle_set_active(self, command: TaskCommand) -> None:
        task_id = command.task_id
        if task_id is None or task_id < 0:
            logger.error("Was trying to update status of the task with invalid/unset ID=%s", task_id)
            return

        try:
            with self.store.transaction() as tx:
                task = tx.get_task(task_id)
                if task is None:
                    logger.debug("Task %s no longer exists; status change ignored", task_id)
                    return
                if task.active == command.active:
                    return
                updated = start(task, self._now()) if command.active else stop(task)
                tx.update_task_status(updated)
        except StoreError:
            logger.exception("Couldn't update status of task %s", task_id)
            self.scheduler.rearm()
            return
        except InvalidInterval:
            logger.exception("Couldn't start task %s", task_id)
            return

        logger.info("Task %s -> %s", task_id, "active" if command.active else "inactive")
        self.changes.notify(task_id)
        self.scheduler.rearm()

    def _handle_delete(self, command: TaskCommand) -> None:
        task_id = command.task_id
        if task_id is None or task_id < 0:
            logger.error("Was trying to delete task with invalid ID=%s", task_id)
            return

        try:
            with self.store.transaction() as tx:
                tx.delete_task(task_id)
        except StoreError:
            logger.exception("Couldn't delete task with ID %s", task_id)
            self.scheduler.rearm()
            return

        logger.info("Task %s deleted", task_id)
        self.changes.notify(task_id)
        self.scheduler.rearm()

    def _handle_restore(self, command: TaskCommand) -> None:
        task = command.task
        if task is None or not task.has_id:
            logger.error("Was trying to restore task with invalid/unset ID=%s", getattr(task, "id", None))
            return

        try:
            with self.store.transaction() as tx:
                tx.restore_task(task)
        except StoreError:
            logger.exception("Couldn't restore task %s", task.id)
            self.scheduler.rearm()
            return

        logger.info("Task %s restored", task.id)
        self.changes.notify(task.id)
        self.scheduler.rearm()

    def _handle_alarm_fired(self, command: TaskCommand) -> None:
        self.alarm_handler.on_alarm_fired()

    def _handle_dismiss(self, command: TaskCommand) -> None:
        self.dismissal.dismiss(command.task_id)

    def _handle_stop(self, command: TaskCommand) -> None:
        if command.task_id is None:
            logger.error("STOP without a task id")
            return
        self.dismissal.stop(command.task_id)
