# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from nagbox.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_console_filter_levels() -> None:
    f = _ConsoleNoiseFilter()

    assert f.filter(_record("nagbox.tasks.alarm_handler", logging.DEBUG))
    assert not f.filter(_record("nagbox.connectors.matrix_connector", logging.INFO))
    assert f.filter(_record("nagbox.connectors.matrix_connector", logging.WARNING))
    assert not f.filter(_record("nio.crypto", logging.WARNING))
    assert not f.filter(_record("urllib3", logging.WARNING))
    assert f.filter(_record("urllib3", logging.ERROR))


def test_setup_logging_writes_file(tmp_path: Path, restore_root_logging) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs")

    logging.getLogger("nagbox.test").debug("reminder fired for %s", "water")
    for h in logging.getLogger().handlers:
        h.flush()

    assert log_file == tmp_path / "logs" / "nagbox.log"
    assert "reminder fired for water" in log_file.read_text("utf-8")


def test_setup_logging_replaces_handlers(tmp_path: Path, restore_root_logging) -> None:
    setup_logging(log_dir=tmp_path)
    setup_logging(log_dir=tmp_path)

    assert len(logging.getLogger().handlers) == 2
