# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from dataclasses import replace
from pathlib import Path

import pytest

from nagbox.tasks.errors import StoreError
from nagbox.tasks.task_models import Task
from nagbox.tasks.task_store import TaskStore


def _create(store: TaskStore, task: Task) -> int:
    with store.transaction() as tx:
        return tx.create_task(task)


def test_create_get_list(store: TaskStore) -> None:
    a = _create(store, Task(title="Drink water", interval=30))
    b = _create(store, Task(title="Stretch"))

    assert a > 0 and b > a
    got = store.get_task(a)
    assert got is not None
    assert got.title == "Drink water"
    assert got.interval == 30
    assert got.active is False
    assert got.seen is True
    assert [t.id for t in store.list_tasks()] == [a, b]
    assert store.count_tasks() == 2


def test_description_and_status_updates_do_not_clobber_each_other(store: TaskStore) -> None:
    task_id = _create(store, Task(title="old", interval=5))
    snapshot = store.get_task(task_id)
    assert snapshot is not None

    with store.transaction() as tx:
        tx.update_task_status(replace(snapshot, active=True, seen=False, next_fire_at=1234, last_started_at=999))
    # A description edit built from the stale snapshot must not reset the status.
    with store.transaction() as tx:
        tx.update_task(replace(snapshot, title="new", interval=15))

    got = store.get_task(task_id)
    assert got is not None
    assert (got.title, got.interval) == ("new", 15)
    assert (got.active, got.seen, got.next_fire_at, got.last_started_at) == (True, False, 1234, 999)


def test_update_missing_task_raises_and_rolls_back(store: TaskStore) -> None:
    task_id = _create(store, Task(title="a"))
    existing = store.get_task(task_id)
    assert existing is not None

    with pytest.raises(StoreError):
        with store.transaction() as tx:
            tx.update_task_status(replace(existing, active=True, next_fire_at=42))
            tx.update_task_status(Task(id=9999, title="ghost"))

    got = store.get_task(task_id)
    assert got is not None
    assert got.active is False
    assert got.next_fire_at == 0


def test_transaction_rolls_back_on_foreign_exception(store: TaskStore) -> None:
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.create_task(Task(title="never"))
            raise RuntimeError("boom")

    assert store.count_tasks() == 0


def test_delete_is_idempotent_and_restore_keeps_id_and_fields(store: TaskStore) -> None:
    task_id = _create(store, Task(title="posture", interval=20, active=True, seen=False, next_fire_at=555))
    snapshot = store.get_task(task_id)
    assert snapshot is not None

    with store.transaction() as tx:
        tx.delete_task(task_id)
    with store.transaction() as tx:
        tx.delete_task(task_id)
    assert store.get_task(task_id) is None

    # New tasks never take a deleted id, so restore cannot collide.
    other = _create(store, Task(title="other"))
    assert other != task_id

    with store.transaction() as tx:
        tx.restore_task(snapshot)
    assert store.get_task(task_id) == snapshot


def test_restore_existing_id_fails(store: TaskStore) -> None:
    task_id = _create(store, Task(title="dup"))
    snapshot = store.get_task(task_id)
    assert snapshot is not None

    with pytest.raises(StoreError):
        with store.transaction() as tx:
            tx.restore_task(snapshot)


def test_query_due_and_closest_fire_at(store: TaskStore) -> None:
    _create(store, Task(title="inactive", active=False, next_fire_at=10))
    _create(store, Task(title="due", active=True, next_fire_at=100))
    _create(store, Task(title="later", active=True, next_fire_at=300))
    _create(store, Task(title="broken", interval=0, active=True, next_fire_at=50))

    assert [t.title for t in store.query_due(200)] == ["broken", "due"]
    assert [t.title for t in store.query_due(99)] == ["broken"]
    # Tasks that can never be advanced are not worth waking up for.
    assert store.closest_fire_at() == 100


def test_closest_fire_at_none_without_active_tasks(store: TaskStore) -> None:
    _create(store, Task(title="off"))
    assert store.closest_fire_at() is None


def test_list_unseen_only_active(store: TaskStore) -> None:
    _create(store, Task(title="a", active=True, seen=False))
    _create(store, Task(title="b", active=False, seen=False))
    _create(store, Task(title="c", active=True, seen=True))

    with store.transaction() as tx:
        assert [t.title for t in tx.list_unseen()] == ["a"]


def test_starter_tasks_seeded_only_on_first_creation(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    store = TaskStore(db, starter_titles=["Drink water", " ", "Stretch"])
    assert [t.title for t in store.list_tasks()] == ["Drink water", "Stretch"]

    again = TaskStore(db, starter_titles=["Drink water", "Stretch"])
    assert again.count_tasks() == 2


def test_migration_adds_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(str(db))
    conn.execute(
        """
        CREATE TABLE tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL DEFAULT '',
            interval INTEGER NOT NULL DEFAULT 5,
            active INTEGER NOT NULL DEFAULT 0,
            next_fire_at INTEGER NOT NULL DEFAULT 0
        )
        """
    )
    conn.execute("INSERT INTO tasks(title, interval, active, next_fire_at) VALUES ('legacy', 5, 1, 77)")
    conn.commit()
    conn.close()

    store = TaskStore(db, starter_titles=["should not appear"])
    tasks = store.list_tasks()

    assert len(tasks) == 1
    assert tasks[0].title == "legacy"
    assert tasks[0].seen is True
    assert tasks[0].last_started_at == 0
