# src/nagbox/tasks/dismissal.py

from __future__ import annotations

import logging

from ..core.ports import TaskRepo
from .changes import ChangeNotifier
from .errors import StoreError
from .status import mark_seen, stop
from .task_models import Task
from .task_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


class DismissalHandler:
    """
    User reactions to a displayed notification.

    Both actions race with deletes and toggles by nature, so a stale id or a task
    already in the target state is a silent no-op.
    """

    def __init__(
        self,
        store: TaskRepo,
        scheduler: ReminderScheduler,
        changes: ChangeNotifier,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._changes = changes

    def dismiss(self, task_id: int | None = None) -> list[Task]:
        """
        Mark the task (or, with task_id=None, every active unseen task) as seen.

        Never re-arms: being seen does not change eligibility or timing.
        Returns the tasks that were actually updated.
        """
        updated: list[Task] = []
        try:
            with self._store.transaction() as tx:
                if task_id is None:
                    candidates = tx.list_unseen()
                else:
                    found = tx.get_task(task_id)
                    candidates = [found] if found is not None else []

                for task in candidates:
                    seen_task, changed = mark_seen(task)
                    if changed:
                        tx.update_task_status(seen_task)
                        updated.append(seen_task)
        except StoreError:
            logger.exception("Couldn't dismiss task_id=%s", task_id)
            return []

        if not updated:
            logger.debug("Dismiss task_id=%s: nothing to do", task_id)
        for task in updated:
            self._changes.notify(task.id)
        return updated

    def stop(self, task_id: int) -> bool:
        """
        Turn the task off from its notification. Returns True if it was active.
        """
        try:
            with self._store.transaction() as tx:
                task = tx.get_task(task_id)
                if task is None or not task.active:
                    logger.debug("Stop task_id=%s: missing or already inactive", task_id)
                    return False
                tx.update_task_status(stop(task))
        except StoreError:
            logger.exception("Couldn't stop task_id=%s", task_id)
            self._scheduler.rearm()
            return False

        logger.info("Task %s stopped from notification", task_id)
        self._changes.notify(task_id)
        self._scheduler.rearm()
        return True
