# src/nagbox/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator
from pathlib import Path

from .errors import StoreError
from .task_models import Task

logger = logging.getLogger(__name__)

_STATUS_COLUMNS = "active = ?, seen = ?, next_fire_at = ?, last_started_at = ?"


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=int(row["id"]),
        title=str(row["title"] or ""),
        interval=int(row["interval"] or 0),
        active=bool(row["active"]),
        seen=bool(row["seen"]),
        next_fire_at=int(row["next_fire_at"] or 0),
        last_started_at=int(row["last_started_at"] or 0),
    )


def _status_params(task: Task) -> tuple[int, int, int, int]:
    return (int(task.active), int(task.seen), int(task.next_fire_at), int(task.last_started_at))


class TaskTransaction:
    """
    Operations executed inside one SQLite transaction.

    Obtained from TaskStore.transaction(). Any failure rolls back everything done
    through this object. Description writes (title, interval) and status writes
    (active, seen, next_fire_at, last_started_at) never share a statement.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ---- reads ----

    def get_task(self, task_id: int) -> Task | None:
        row = self._conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        return _row_to_task(row) if row else None

    def query_due(self, now: int) -> list[Task]:
        rows = self._conn.execute(
            """
            SELECT *
            FROM tasks
            WHERE active = 1
              AND next_fire_at <= ?
            ORDER BY next_fire_at ASC, id ASC
            """,
            (int(now),),
        ).fetchall()
        return [_row_to_task(r) for r in rows]

    def list_unseen(self) -> list[Task]:
        rows = self._conn.execute(
            "SELECT * FROM tasks WHERE active = 1 AND seen = 0 ORDER BY id ASC"
        ).fetchall()
        return [_row_to_task(r) for r in rows]

    # ---- writes ----

    def create_task(self, task: Task) -> int:
        now = time.time()
        cur = self._conn.execute(
            """
            INSERT INTO tasks(
                title, interval, active, seen, next_fire_at, last_started_at,
                created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (task.title, int(task.interval), *_status_params(task), now, now),
        )
        rowid = cur.lastrowid
        if rowid is None:
            raise StoreError("SQLite did not return lastrowid for task insert")
        return int(rowid)

    def restore_task(self, task: Task) -> None:
        """Insert the task back under its previous id with all of its fields."""
        if not task.has_id:
            raise StoreError("cannot restore a task that was never persisted")
        now = time.time()
        try:
            self._conn.execute(
                """
                INSERT INTO tasks(
                    id, title, interval, active, seen, next_fire_at, last_started_at,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (int(task.id), task.title, int(task.interval), *_status_params(task), now, now),
            )
        except sqlite3.IntegrityError as e:
            raise StoreError(f"task {task.id} already exists") from e

    def update_task(self, task: Task) -> None:
        cur = self._conn.execute(
            "UPDATE tasks SET title = ?, interval = ?, updated_at = ? WHERE id = ?",
            (task.title, int(task.interval), time.time(), int(task.id)),
        )
        if cur.rowcount != 1:
            raise StoreError(f"task {task.id} not found")

    def update_task_status(self, task: Task) -> None:
        cur = self._conn.execute(
            f"UPDATE tasks SET {_STATUS_COLUMNS}, updated_at = ? WHERE id = ?",
            (*_status_params(task), time.time(), int(task.id)),
        )
        if cur.rowcount != 1:
            raise StoreError(f"task {task.id} not found")

    def delete_task(self, task_id: int) -> None:
        """Ensure the task is gone. Deleting a missing task is not an error."""
        self._conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - writes go through transaction(), which takes the write lock up front
      (BEGIN IMMEDIATE) so concurrent read-modify-write sequences serialize
    """

    def __init__(
        self,
        db_path: str | Path = "tasks.sqlite3",
        *,
        starter_titles: Iterable[str] = (),
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        created = self._ensure_schema()
        if created:
            self._seed(starter_titles)
        try:
            total = self.count_tasks()
        except StoreError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self, *, autocommit: bool = False) -> sqlite3.Connection:
        try:
            if autocommit:
                conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
            else:
                conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> bool:
        """Create or migrate the tasks table. Returns True if the table was just created."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'tasks'")
            existed = cur.fetchone() is not None

            # AUTOINCREMENT keeps deleted ids from being reused, so a restore never collides.
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL DEFAULT '',
                    interval INTEGER NOT NULL DEFAULT 5,
                    active INTEGER NOT NULL DEFAULT 0,
                    seen INTEGER NOT NULL DEFAULT 1,
                    next_fire_at INTEGER NOT NULL DEFAULT 0,
                    last_started_at INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL DEFAULT 0,
                    updated_at REAL NOT NULL DEFAULT 0
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("seen", "INTEGER NOT NULL DEFAULT 1")
            add_col("last_started_at", "INTEGER NOT NULL DEFAULT 0")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_active_fire ON tasks(active, next_fire_at)")

            conn.commit()
            return not existed
        except sqlite3.Error as e:
            raise StoreError(f"schema setup failed for {self._db_path}: {e}") from e
        finally:
            conn.close()

    def _seed(self, titles: Iterable[str]) -> None:
        clean = [t.strip() for t in titles if t and t.strip()]
        if not clean:
            return
        with self.transaction() as tx:
            for title in clean:
                tx.create_task(Task(title=title))
        logger.info("TaskStore seeded %d starter tasks", len(clean))

    def _fetch_all(self, sql: str, params: tuple = ()) -> list[Task]:
        conn = self._get_conn()
        try:
            return [_row_to_task(r) for r in conn.execute(sql, params).fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"query failed: {e}") from e
        finally:
            conn.close()

    # ---- public API ----

    @contextlib.contextmanager
    def transaction(self) -> Iterator[TaskTransaction]:
        """
        All-or-nothing unit of work.

            with store.transaction() as tx:
                task = tx.get_task(task_id)
                tx.update_task_status(...)

        Commits when the block exits normally. On any exception the transaction is
        rolled back; SQLite errors are re-raised as StoreError.
        """
        conn = self._get_conn(autocommit=True)
        try:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreError(f"cannot begin transaction: {e}") from e

            try:
                yield TaskTransaction(conn)
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                raise StoreError(f"transaction failed: {e}") from e
            except BaseException:
                self._rollback(conn)
                raise
        finally:
            conn.close()

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.debug("Rollback failed (transaction already closed?)", exc_info=True)

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        except sqlite3.Error as e:
            raise StoreError(f"count failed: {e}") from e
        finally:
            conn.close()

    def get_task(self, task_id: int) -> Task | None:
        found = self._fetch_all("SELECT * FROM tasks WHERE id = ?", (int(task_id),))
        return found[0] if found else None

    def list_tasks(self) -> list[Task]:
        return self._fetch_all("SELECT * FROM tasks ORDER BY id ASC")

    def query_due(self, now: int) -> list[Task]:
        """Active tasks whose next_fire_at is at or before `now`."""
        return self._fetch_all(
            """
            SELECT *
            FROM tasks
            WHERE active = 1
              AND next_fire_at <= ?
            ORDER BY next_fire_at ASC, id ASC
            """,
            (int(now),),
        )

    def closest_fire_at(self) -> int | None:
        """
        min(next_fire_at) over active tasks, or None if nothing is active.

        Tasks with a non-positive interval are skipped: they can never be advanced,
        so waking up for them would only repeat forever.
        """
        conn = self._get_conn()
        try:
            (ts,) = conn.execute(
                "SELECT MIN(next_fire_at) FROM tasks WHERE active = 1 AND interval > 0"
            ).fetchone()
            return int(ts) if ts is not None else None
        except sqlite3.Error as e:
            raise StoreError(f"closest_fire_at failed: {e}") from e
        finally:
            conn.close()
