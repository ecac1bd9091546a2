# tests/test_scheduler.py

from __future__ import annotations

from nagbox.tasks.errors import StoreError
from nagbox.tasks.task_models import Task
from nagbox.tasks.task_scheduler import ReminderScheduler

from .fakes import FakeAlarmClock, InMemoryTaskRepo


def test_arms_at_earliest_active_task() -> None:
    repo = InMemoryTaskRepo(
        [
            Task(id=1, title="a", active=True, next_fire_at=3_000),
            Task(id=2, title="b", active=True, next_fire_at=1_000),
            Task(id=3, title="off", active=False, next_fire_at=10),
        ]
    )
    alarm = FakeAlarmClock()
    scheduler = ReminderScheduler(repo, alarm, tolerance_ms=10_000, now_fn=lambda: 0)

    assert scheduler.rearm() == 1_000
    assert alarm.armed_at == 1_000
    assert alarm.tolerance_ms == 10_000


def test_cancels_when_nothing_is_active() -> None:
    # Last active task turned off: no timer may stay behind.
    repo = InMemoryTaskRepo([Task(id=1, title="a", active=True, next_fire_at=1_000)])
    alarm = FakeAlarmClock()
    scheduler = ReminderScheduler(repo, alarm, now_fn=lambda: 0)
    scheduler.rearm()

    repo.tasks[1].active = False
    assert scheduler.rearm() is None
    assert alarm.armed_at is None
    assert alarm.cancel_calls == 1


def test_rearm_is_idempotent() -> None:
    repo = InMemoryTaskRepo([Task(id=1, title="a", active=True, next_fire_at=5_000)])
    alarm = FakeAlarmClock()
    scheduler = ReminderScheduler(repo, alarm, now_fn=lambda: 0)

    scheduler.rearm()
    scheduler.rearm()

    assert alarm.arm_calls == [5_000, 5_000]


def test_negative_tolerance_is_clamped() -> None:
    scheduler = ReminderScheduler(InMemoryTaskRepo(), FakeAlarmClock(), tolerance_ms=-5)
    assert scheduler.tolerance_ms == 0


def test_store_failure_keeps_current_alarm() -> None:
    class BrokenRepo(InMemoryTaskRepo):
        def closest_fire_at(self) -> int | None:
            raise StoreError("disk gone")

    alarm = FakeAlarmClock(armed_at=1_234)
    scheduler = ReminderScheduler(BrokenRepo(), alarm, now_fn=lambda: 0)

    assert scheduler.rearm() is None
    assert alarm.armed_at == 1_234
    assert alarm.cancel_calls == 0


def test_overdue_target_is_retried_later_not_immediately() -> None:
    repo = InMemoryTaskRepo([Task(id=1, title="a", active=True, next_fire_at=1_000)])
    alarm = FakeAlarmClock()
    scheduler = ReminderScheduler(repo, alarm, retry_ms=30_000, now_fn=lambda: 5_000)

    assert scheduler.rearm() == 35_000
    assert alarm.armed_at == 35_000


def test_target_equal_to_now_counts_as_overdue() -> None:
    repo = InMemoryTaskRepo([Task(id=1, title="a", active=True, next_fire_at=5_000)])
    scheduler = ReminderScheduler(repo, FakeAlarmClock(), retry_ms=30_000, now_fn=lambda: 5_000)

    assert scheduler.rearm() == 35_000
