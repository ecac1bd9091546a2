# src/nagbox/tasks/alarm_handler.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.ports import Notifier, TaskRepo
from ..core.time_utils import now_ms
from .changes import ChangeNotifier
from .errors import InvalidInterval, StoreError
from .status import advance, mark_unseen
from .task_models import Task
from .task_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


class AlarmHandler:
    """
    Reacts to the timer firing (or to an explicit "check now", e.g. at startup).

    - in one transaction: selects every active task that is due, marks them
      unseen and pushes next_fire_at into the future (catch-up),
    - shows the due set as one notification batch,
    - re-arms the scheduler no matter what happened before.
    """

    def __init__(
        self,
        store: TaskRepo,
        notifier: Notifier,
        scheduler: ReminderScheduler,
        changes: ChangeNotifier,
        *,
        now_fn: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._scheduler = scheduler
        self._changes = changes
        self._now = now_fn

    def on_alarm_fired(self) -> list[Task]:
        """
        Handle one wake-up. Returns the tasks that were persisted with new values
        (empty if nothing was due or the transaction failed).
        """
        try:
            return self._process(self._now())
        finally:
            self._scheduler.rearm()

    def _process(self, now: int) -> list[Task]:
        due: list[Task] = []
        to_update: list[Task] = []
        committed = False
        try:
            # Read and write under one write lock: a toggle or stop issued by
            # another connection cannot slip in between and get overwritten.
            with self._store.transaction() as tx:
                due = tx.query_due(now)
                to_update = self._advance_all(due, now)
                for task in to_update:
                    tx.update_task_status(task)
            committed = True
        except StoreError:
            logger.exception("Couldn't update status of %d tasks when alarm fired", len(to_update))

        if not due:
            if committed:
                logger.warning("Alarm fired, but there was nothing to remind about")
            return []

        logger.info("Firing a notification for %d tasks", len(due))
        try:
            self._notifier.show_batch(due)
        except Exception:
            logger.exception("Notification display failed for %d tasks", len(due))

        if not committed:
            return []
        if not to_update:
            logger.warning("Strangely enough, there was nothing to update when alarm fired")
            return []

        for task in to_update:
            self._changes.notify(task.id)
        return to_update

    @staticmethod
    def _advance_all(due: list[Task], now: int) -> list[Task]:
        to_update: list[Task] = []
        for task in due:
            # A fresh reminder is by definition unseen.
            updated, unseen_changed = mark_unseen(task)
            try:
                updated, advanced = advance(updated, now)
            except InvalidInterval as e:
                logger.error("Skipping task: %s", e)
                continue
            if unseen_changed or advanced:
                to_update.append(updated)
        return to_update
