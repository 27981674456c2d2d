# src/aura_tasks/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from pathlib import Path

from ..core.errors import StorageError
from .task_models import Task, sort_key

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store with an async API.

    - each operation opens its own SQLite connection and runs in a worker
      thread (asyncio.to_thread), so the event loop never blocks on disk I/O
    - every write is committed before the awaiting caller resumes
    - update() of an unknown id is rejected with StorageError (no upsert)
    - delete() is idempotent
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Task database unavailable: {self._db_path}") from e
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self._count_sync())

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    time TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    created TEXT NOT NULL
                )
                """
            )
            # Store-level optimization only; list_sorted() re-sorts in Python.
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_time ON tasks(time)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task.from_record(dict(row))

    def _count_sync(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def _insert_sync(self, task: Task) -> int:
        rec = task.to_record()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "INSERT INTO tasks(title, time, description, created) VALUES (?, ?, ?, ?)",
                (rec["title"], rec["time"], rec["description"], rec["created"]),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise StorageError("SQLite did not return lastrowid for task insert")
            return int(rowid)
        finally:
            conn.close()

    def _update_sync(self, task: Task) -> None:
        rec = task.to_record()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE tasks SET title = ?, time = ?, description = ? WHERE id = ?",
                (rec["title"], rec["time"], rec["description"], int(task.id)),  # type: ignore[arg-type]
            )
            conn.commit()
            if cur.rowcount != 1:
                raise StorageError(f"Task {task.id} does not exist")
        finally:
            conn.close()

    def _delete_sync(self, task_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
        finally:
            conn.close()

    def _get_sync(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def _list_sync(self) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM tasks ORDER BY time ASC, id ASC").fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    async def _run(self, op: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except StorageError:
            raise
        except sqlite3.Error as e:
            logger.exception("TaskStore %s failed db=%s", op, self._db_path)
            raise StorageError(f"Task storage failed during {op}: {e}") from e
        except ValueError as e:
            # A stored time/created that no longer parses.
            logger.error("TaskStore %s read a malformed row db=%s: %s", op, self._db_path, e)
            raise StorageError(f"Malformed task record during {op}: {e}") from e

    # ---- public API ----

    async def count(self) -> int:
        return await self._run("count", self._count_sync)

    async def insert(self, task: Task) -> int:
        """Persist a task without id; returns the fresh id."""
        if task.id is not None:
            raise StorageError(f"insert() expects a task without id (got id={task.id})")
        task_id = await self._run("insert", self._insert_sync, task)
        logger.debug("Task inserted id=%s time=%s title=%r", task_id, task.time.isoformat(), task.title)
        return task_id

    async def update(self, task: Task) -> None:
        """Overwrite title/time/description of an existing task. Unknown id -> StorageError."""
        if task.id is None:
            raise StorageError("update() requires a task with an id")
        await self._run("update", self._update_sync, task)
        logger.debug("Task updated id=%s time=%s", task.id, task.time.isoformat())

    async def delete(self, task_id: int) -> None:
        await self._run("delete", self._delete_sync, task_id)
        logger.debug("Task deleted id=%s", task_id)

    async def get(self, task_id: int) -> Task | None:
        return await self._run("get", self._get_sync, task_id)

    async def list_sorted(self) -> list[Task]:
        """All tasks, time ascending, ties by id (insertion order)."""
        tasks = await self._run("list", self._list_sync)
        return sorted(tasks, key=sort_key)
