# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from nagbox.core.state import AppState
from nagbox.tasks.task_service import NagService
from nagbox.tasks.task_store import TaskStore

from .fakes import FakeAlarmClock, ManualClock, RecordingNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the command layer.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="nagbox-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        default_interval_minutes=5,
        alarm_tolerance_ms=10_000,
        starter_tasks=[],
    )


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def alarm() -> FakeAlarmClock:
    return FakeAlarmClock()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    # Real SQLite here: store correctness is part of what we want to test.
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def service(store, alarm, notifier, clock, settings) -> NagService:
    """Engine wired with fakes for the timer, the display and time. Worker not started."""
    return NagService(store, alarm, notifier, tolerance_ms=settings.alarm_tolerance_ms, now_fn=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, service: NagService):
    """AppState with a running engine worker; stopped after the test."""
    service.start(boot_check=False)
    yield AppState(settings=settings, task_store=store, service=service)
    service.shutdown()
