"""SQLite-backed task store (single file, single table)."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Union

from src.models.task import Task, TaskCreate, TaskUpdate
from src.services.task_store import TaskStore, generate_task_id
from src.utils.errors import StorageError

logger = logging.getLogger(__name__)

COLUMNS = ("task_id", "title", "description", "due_date", "completed", "created_at", "updated_at")

# Columns added to tables created by older schemas
MIGRATION_COLUMNS = {
    "title": "TEXT",
    "description": "TEXT",
    "due_date": "TEXT",
    "completed": "INTEGER DEFAULT 0",
    "created_at": "TEXT",
    "updated_at": "TEXT",
}


def utc_now() -> str:
    """Current UTC time as ISO-8601."""
    return datetime.now(timezone.utc).isoformat()


class SqliteTaskStore(TaskStore):
    """
    SQLite task store.

    One connection is opened at construction and reused for the process
    lifetime. The schema is synchronized on startup:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Insertion order is rowid order.
    """

    def __init__(self, db_path: Union[str, Path] = "tasks.sqlite3",
                 title_choices: Optional[Sequence[str]] = None):
        super().__init__(title_choices)
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        with self._storage_errors("open task database"):
            # The HTTP server handles one request at a time
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        self._sync_schema()
        logger.info("SqliteTaskStore ready", extra={"db_path": self._db_path, "total": self.count()})

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
        logger.info("SqliteTaskStore closed", extra={"db_path": self._db_path})

    @contextmanager
    def _storage_errors(self, action: str):
        """Re-raise sqlite3 failures as StorageError."""
        try:
            yield
        except sqlite3.Error as e:
            logger.error(f"Failed to {action}: {e}", extra={"db_path": self._db_path})
            raise StorageError(f"Failed to {action}: {e}") from e

    def _sync_schema(self) -> None:
        with self._storage_errors("synchronize schema"), self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    task_id TEXT PRIMARY KEY,
                    title TEXT,
                    description TEXT,
                    due_date TEXT,
                    completed INTEGER DEFAULT 0,
                    created_at TEXT,
                    updated_at TEXT
                )
                """
            )
            cols = {row["name"] for row in self._conn.execute("PRAGMA table_info(tasks)")}
            for name, decl in MIGRATION_COLUMNS.items():
                if name in cols:
                    continue
                self._conn.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("Task schema migration: added column", extra={"column": name})

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            task_id=row["task_id"],
            title=row["title"],
            description=row["description"],
            due_date=row["due_date"],
            completed=None if row["completed"] is None else bool(row["completed"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def count(self) -> int:
        """Number of stored tasks."""
        with self._storage_errors("count tasks"):
            return self._conn.execute("SELECT COUNT(*) FROM tasks").fetchone()[0]

    def list(self) -> List[Task]:
        with self._storage_errors("list tasks"):
            rows = self._conn.execute(
                f"SELECT {', '.join(COLUMNS)} FROM tasks ORDER BY rowid"
            ).fetchall()
        return [self._row_to_task(row) for row in rows]

    def get(self, task_id: str) -> Optional[Task]:
        with self._storage_errors("get task"):
            row = self._conn.execute(
                f"SELECT {', '.join(COLUMNS)} FROM tasks WHERE task_id = ?", (task_id,)
            ).fetchone()
        return self._row_to_task(row) if row is not None else None

    def create(self, fields: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        data = self._coerce_create(fields)
        now = utc_now()
        task = Task(task_id=generate_task_id(), created_at=now, updated_at=now, **data.model_dump())

        with self._storage_errors("create task"), self._conn:
            self._conn.execute(
                f"INSERT INTO tasks ({', '.join(COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    task.task_id,
                    task.title,
                    task.description,
                    task.due_date.isoformat(),
                    int(task.completed),
                    task.created_at,
                    task.updated_at,
                ),
            )
        logger.info("Task created", extra={"task_id": task.task_id})
        return task

    def update(self, task_id: str, fields: Union[TaskUpdate, Mapping[str, Any]]) -> Optional[Task]:
        data = self._coerce_update(fields)

        with self._storage_errors("update task"), self._conn:
            cur = self._conn.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, due_date = ?, completed = ?, updated_at = ?
                WHERE task_id = ?
                """,
                (
                    data.title,
                    data.description,
                    data.due_date.isoformat() if data.due_date is not None else None,
                    None if data.completed is None else int(data.completed),
                    utc_now(),
                    task_id,
                ),
            )
        if cur.rowcount == 0:
            return None
        logger.info("Task updated", extra={"task_id": task_id})
        return self.get(task_id)

    def delete(self, task_id: str) -> bool:
        with self._storage_errors("delete task"), self._conn:
            cur = self._conn.execute("DELETE FROM tasks WHERE task_id = ?", (task_id,))
        removed = cur.rowcount > 0
        if removed:
            logger.info("Task deleted", extra={"task_id": task_id})
        return removed
