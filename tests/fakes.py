# tests/fakes.py

from __future__ import annotations

import contextlib
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field, replace

from nagbox.tasks.errors import StoreError
from nagbox.tasks.task_models import Task


class ManualClock:
    """Deterministic time source (ms since epoch) for the engine."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@dataclass(slots=True)
class FakeAlarmClock:
    """
    AlarmClock that only records what it was asked to do.
    """

    armed_at: int | None = None
    tolerance_ms: int | None = None
    arm_calls: list[int] = field(default_factory=list)
    cancel_calls: int = 0

    def arm(self, at_ms: int, tolerance_ms: int) -> None:
        self.armed_at = at_ms
        self.tolerance_ms = tolerance_ms
        self.arm_calls.append(at_ms)

    def cancel(self) -> None:
        self.armed_at = None
        self.cancel_calls += 1


@dataclass(slots=True)
class RecordingNotifier:
    batches: list[list[Task]] = field(default_factory=list)
    fail: bool = False

    def show_batch(self, tasks: Sequence[Task]) -> None:
        if self.fail:
            raise RuntimeError("display unavailable")
        self.batches.append(list(tasks))


class _FakeTx:
    def __init__(self, repo: InMemoryTaskRepo) -> None:
        self._repo = repo

    def get_task(self, task_id: int) -> Task | None:
        t = self._repo.tasks.get(task_id)
        return replace(t) if t is not None else None

    def query_due(self, now: int) -> list[Task]:
        return self._repo.query_due(now)

    def list_unseen(self) -> list[Task]:
        return [replace(t) for t in self._repo.tasks.values() if t.active and not t.seen]

    def create_task(self, task: Task) -> int:
        task_id = self._repo.next_id
        self._repo.next_id += 1
        self._repo.tasks[task_id] = replace(task, id=task_id)
        return task_id

    def restore_task(self, task: Task) -> None:
        if task.id in self._repo.tasks:
            raise StoreError(f"task {task.id} already exists")
        self._repo.tasks[task.id] = replace(task)

    def update_task(self, task: Task) -> None:
        self._repo.update_calls += 1
        current = self._repo.tasks.get(task.id)
        if current is None:
            raise StoreError(f"task {task.id} not found")
        self._repo.tasks[task.id] = replace(current, title=task.title, interval=task.interval)

    def update_task_status(self, task: Task) -> None:
        self._repo.update_calls += 1
        current = self._repo.tasks.get(task.id)
        if current is None:
            raise StoreError(f"task {task.id} not found")
        self._repo.tasks[task.id] = replace(
            current,
            active=task.active,
            seen=task.seen,
            next_fire_at=task.next_fire_at,
            last_started_at=task.last_started_at,
        )

    def delete_task(self, task_id: int) -> None:
        self._repo.tasks.pop(task_id, None)


class InMemoryTaskRepo:
    """
    In-memory TaskRepo used for engine unit tests.

    Transactions are all-or-nothing: on any error (or when fail_commit is set)
    the whole dict is put back the way it was. Counts update calls so tests can
    assert that a no-op really touched nothing.
    """

    def __init__(self, tasks: Sequence[Task] = ()) -> None:
        self.tasks: dict[int, Task] = {t.id: replace(t) for t in tasks}
        self.next_id = max(self.tasks, default=0) + 1
        self.update_calls = 0
        self.transactions = 0
        self.fail_commit = False

    @contextlib.contextmanager
    def transaction(self) -> Iterator[_FakeTx]:
        self.transactions += 1
        snapshot = dict(self.tasks)
        try:
            yield _FakeTx(self)
            if self.fail_commit:
                raise StoreError("injected commit failure")
        except BaseException:
            self.tasks = snapshot
            raise

    def get_task(self, task_id: int) -> Task | None:
        t = self.tasks.get(task_id)
        return replace(t) if t is not None else None

    def list_tasks(self) -> list[Task]:
        return [replace(t) for _, t in sorted(self.tasks.items())]

    def query_due(self, now: int) -> list[Task]:
        due = [replace(t) for t in self.tasks.values() if t.active and t.next_fire_at <= now]
        return sorted(due, key=lambda t: (t.next_fire_at, t.id))

    def closest_fire_at(self) -> int | None:
        times = [t.next_fire_at for t in self.tasks.values() if t.active and t.interval > 0]
        return min(times) if times else None
