# src/nagbox/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the runtime, starts the engine worker (with a boot
check for reminders missed while the process was down), then runs connectors:
- console REPL in the main thread (optional),
- Matrix connector in a background thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_runtime
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..connectors.matrix_connector import MatrixBackgroundRunner, start_matrix_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logging.getLogger("nio").setLevel(max(console_level, logging.INFO))

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    runtime = create_runtime(settings=settings)
    state = runtime.state
    state.service.start(boot_check=True)

    matrix_runner: MatrixBackgroundRunner | None = None
    if runtime.matrix_notifier is not None:
        matrix_runner = start_matrix_in_background(state, runtime.matrix_notifier)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running background connectors only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if matrix_runner is not None:
            matrix_runner.stop()
            matrix_runner.join(timeout=10.0)

        state.service.shutdown()
        state.task_store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
