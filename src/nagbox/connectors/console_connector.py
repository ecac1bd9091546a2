# src/nagbox/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Sequence
from typing import TextIO

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..core.time_utils import ts_local
from ..tasks.task_models import Task
from .render import render_batch

logger = logging.getLogger(__name__)


def _print_ts(text: str) -> None:
    print(f"[{ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """Shows reminder batches in the terminal, between REPL prompts."""

    def __init__(self, *, app_name: str = "nagbox", stream: TextIO | None = None) -> None:
        self._app_name = app_name
        self._stream = stream
        self._lock = threading.Lock()

    def show_batch(self, tasks: Sequence[Task]) -> None:
        text = render_batch(tasks, app_name=self._app_name)
        if not text:
            return
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write(f"\n[{ts_local()}] {text}\n")
            stream.flush()


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Manage your reminders. Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            _print_ts("Commands start with '/'. Use /help to list them.")
            continue

        try:
            response = command_registry.handle(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            _print_ts(response)

    logger.info("Console connector finished.")
