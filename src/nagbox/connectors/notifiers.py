# src/nagbox/connectors/notifiers.py

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..core.ports import Notifier
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


class MultiNotifier:
    """Fans one reminder batch out to every enabled connector."""

    def __init__(self, notifiers: Sequence[Notifier]) -> None:
        self._notifiers = list(notifiers)

    def show_batch(self, tasks: Sequence[Task]) -> None:
        for notifier in self._notifiers:
            try:
                notifier.show_batch(tasks)
            except Exception:
                logger.exception("Notifier %s failed", type(notifier).__name__)
