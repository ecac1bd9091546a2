# src/nagbox/tasks/command_queue.py

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from typing import Optional

from .task_commands import TaskCommand

logger = logging.getLogger(__name__)


class CommandQueue:
    """
    Single-consumer FIFO of engine commands.

    - submit() never blocks the caller,
    - one worker thread executes commands one at a time, in order,
    - a crashing command is logged and the worker keeps going,
    - stop() enqueues a sentinel, so everything submitted before it still runs.
    """

    def __init__(self, handler: Callable[[TaskCommand], None], *, name: str = "nagbox-engine") -> None:
        self._handler = handler
        self._name = name
        self._queue: "queue.Queue[TaskCommand | None]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._worker = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._worker.start()

    def submit(self, command: TaskCommand) -> None:
        self._queue.put(command)

    def join(self) -> None:
        """Block until every command submitted so far has been handled."""
        self._queue.join()

    def stop(self, timeout: float | None = 10.0) -> None:
        if self._worker is None:
            return
        self._queue.put(None)
        self._worker.join(timeout=timeout)
        if self._worker.is_alive():
            logger.warning("Engine worker did not stop within %ss", timeout)
        self._worker = None

    def _run(self) -> None:
        logger.info("Engine worker thread started.")
        while True:
            command = self._queue.get()
            try:
                if command is None:
                    logger.info("Engine worker received stop signal.")
                    return
                self._handler(command)
            except Exception:
                logger.exception("Command crashed kind=%s", getattr(command, "kind", None))
            finally:
                self._queue.task_done()
