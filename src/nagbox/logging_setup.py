# src/nagbox/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "nagbox.log"

# Reminders and the REPL prompt share the terminal with log output, so anything
# below these levels goes to the log file only. Longest matching prefix wins.
_CONSOLE_THRESHOLDS: dict[str, int] = {
    "nagbox.": logging.NOTSET,
    "nagbox.connectors.matrix_": logging.WARNING,
    "nagbox.tasks.command_queue": logging.WARNING,
    "nio": logging.ERROR,
    "py.warnings": logging.ERROR,
}
_THIRD_PARTY_THRESHOLD = logging.ERROR


class _ConsoleNoiseFilter(logging.Filter):
    def __init__(self, thresholds: dict[str, int] | None = None) -> None:
        super().__init__()
        # Longest prefix first.
        items = (thresholds or _CONSOLE_THRESHOLDS).items()
        self._thresholds = sorted(items, key=lambda kv: len(kv[0]), reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, level in self._thresholds:
            if record.name.startswith(prefix):
                return record.levelno >= level
        return record.levelno >= _THIRD_PARTY_THRESHOLD


def setup_logging(
    *,
    log_dir: str | Path = ".local/nagbox",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Console gets short, filtered lines; <log_dir>/nagbox.log gets everything,
    rotated so a long-running nagger does not fill the disk.

    Call once from the entry point. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(
        str(log_file), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
