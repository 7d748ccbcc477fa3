# src/taskminder/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from .task_models import OwnedTask, Task, TaskPriority, User

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - the only write the reminder scheduler performs is mark_notified(),
      a single-row conditional UPDATE
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    email TEXT,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    priority TEXT NOT NULL DEFAULT 'Medium',
                    due_at REAL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    notified INTEGER NOT NULL DEFAULT 0,
                    completed_at REAL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT NOT NULL DEFAULT ''")
            add_col("priority", "TEXT NOT NULL DEFAULT 'Medium'")
            add_col("due_at", "REAL")
            add_col("is_completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("notified", "INTEGER NOT NULL DEFAULT 0")
            add_col("completed_at", "REAL")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_reminder "
                "ON tasks(is_completed, notified, due_at)"
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            priority=TaskPriority.from_db(row["priority"]),
            due_at=float(row["due_at"]) if row["due_at"] is not None else None,
            is_completed=bool(row["is_completed"]),
            notified=bool(row["notified"]),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            username=str(row["username"]),
            email=row["email"],
            created_at=float(row["created_at"] or 0.0),
        )

    # ---- users ----

    def add_user(self, *, username: str, email: str | None) -> int:
        if not username or not username.strip():
            raise ValueError("username is required")

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO users(username, email, created_at) VALUES (?, ?, ?)",
                (username.strip(), (email or "").strip() or None, time.time()),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for users insert")
            logger.debug("User added id=%s username=%s", rowid, username)
            return int(rowid)
        finally:
            conn.close()

    def get_user_by_username(self, username: str) -> User | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE username = ?", ((username or "").strip(),)
            ).fetchone()
            return self._row_to_user(row) if row else None
        finally:
            conn.close()

    def list_users(self) -> list[User]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM users ORDER BY id ASC").fetchall()
            return [self._row_to_user(r) for r in rows]
        finally:
            conn.close()

    def delete_user(self, user_id: int) -> bool:
        """Delete the user row only; their tasks stay (and become unresolvable owners)."""
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM users WHERE id = ?", (int(user_id),))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- tasks: owner-facing (CRUD) API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        user_id: int,
        title: str,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_at: float | None = None,
    ) -> int:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks(
                    user_id, title, description, priority, due_at,
                    is_completed, notified, completed_at, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 0, 0, NULL, ?, ?)
                """,
                (
                    int(user_id),
                    title.strip(),
                    (description or "").strip(),
                    TaskPriority(priority).value,
                    float(due_at) if due_at is not None else None,
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            logger.debug("Task added id=%s user_id=%s due_at=%s", task_id, user_id, due_at)
            return task_id
        finally:
            conn.close()

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_tasks(self, *, user_id: int | None = None, limit: int = 100) -> list[Task]:
        conn = self._get_conn()
        try:
            if user_id is None:
                rows = conn.execute(
                    "SELECT * FROM tasks ORDER BY COALESCE(due_at, created_at) ASC LIMIT ?",
                    (int(limit),),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM tasks
                    WHERE user_id = ?
                    ORDER BY COALESCE(due_at, created_at) ASC
                        LIMIT ?
                    """,
                    (int(user_id), int(limit)),
                ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def update_task_fields(
        self,
        task_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
        priority: TaskPriority | None = None,
        due_at: float | None = _UNSET,
    ) -> bool:
        """
        Partial update.

        Passing due_at (including None to clear it) re-arms the reminder:
        notified is reset to 0 when the stored due_at actually changes.
        """
        fields: list[str] = []
        params: list[Any] = []

        if title is not None:
            if not title.strip():
                raise ValueError("title must not be empty")
            fields.append("title = ?")
            params.append(title.strip())

        if description is not None:
            fields.append("description = ?")
            params.append(description.strip())

        if priority is not None:
            fields.append("priority = ?")
            params.append(TaskPriority(priority).value)

        if due_at is not _UNSET:
            new_due = float(due_at) if due_at is not None else None
            fields.append("due_at = ?")
            params.append(new_due)
            fields.append("notified = CASE WHEN due_at IS ? THEN notified ELSE 0 END")
            params.append(new_due)

        if not fields:
            return False

        fields.append("updated_at = ?")
        params.append(time.time())
        params.append(int(task_id))

        # SQLite evaluates every SET expression against the old row, so the
        # notified CASE compares against the previous due_at.
        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def set_completed(self, task_id: int, completed: bool) -> bool:
        """
        Toggle completion.

        completed_at is stamped on the false -> true transition and cleared on
        true -> false; notified is left untouched.
        """
        now = time.time()
        conn = self._get_conn()
        try:
            if completed:
                cur = conn.execute(
                    """
                    UPDATE tasks
                    SET is_completed = 1,
                        completed_at = CASE WHEN is_completed = 1 THEN completed_at ELSE ? END,
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (now, now, int(task_id)),
                )
            else:
                cur = conn.execute(
                    """
                    UPDATE tasks
                    SET is_completed = 0, completed_at = NULL, updated_at = ?
                    WHERE id = ?
                    """,
                    (now, int(task_id)),
                )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_task(self, task_id: int) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- tasks: reminder scheduler API ----

    def _select_unnotified(
        self, *, where_due: str, params: tuple[Any, ...], limit: int
    ) -> list[OwnedTask]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT t.*, u.id AS owner_id, u.email AS owner_email
                FROM tasks t
                LEFT JOIN users u ON u.id = t.user_id
                WHERE t.is_completed = 0
                  AND t.notified = 0
                  AND t.due_at IS NOT NULL
                  AND {where_due}
                ORDER BY t.due_at ASC
                    LIMIT ?
                """,
                (*params, int(limit)),
            )
            out: list[OwnedTask] = []
            for r in cur.fetchall():
                email = (r["owner_email"] or "").strip() or None
                out.append(
                    OwnedTask(
                        task=self._row_to_task(r),
                        owner_found=r["owner_id"] is not None,
                        owner_email=email,
                    )
                )
            return out
        finally:
            conn.close()

    def list_reminder_candidates(
        self, *, start_ts: float, end_ts: float, limit: int = 500
    ) -> list[OwnedTask]:
        """
        Tasks due inside the half-open window [start_ts, end_ts) that are neither
        completed nor already notified, joined to their owner's email.
        """
        return self._select_unnotified(
            where_due="t.due_at >= ? AND t.due_at < ?",
            params=(float(start_ts), float(end_ts)),
            limit=limit,
        )

    def list_unnotified_before(
        self, *, start_ts: float, end_ts: float, limit: int = 500
    ) -> list[OwnedTask]:
        """
        Catch-up query: not-yet-due tasks in [start_ts, end_ts) that never got
        a reminder (e.g. their regular window passed while the process was down).
        """
        return self._select_unnotified(
            where_due="t.due_at >= ? AND t.due_at < ?",
            params=(float(start_ts), float(end_ts)),
            limit=limit,
        )

    def mark_notified(self, task_id: int, *, due_at: float | None = _UNSET) -> bool:
        """
        Conditional guard update: notified 0 -> 1.

        Passing due_at pins the update to the due time the reminder was built
        for: if the task was rescheduled meanwhile, nothing is written.

        Returns True only if this call flipped the flag; False when it was
        already set, the due time moved, or the task no longer exists.
        """
        sql = "UPDATE tasks SET notified = 1, updated_at = ? WHERE id = ? AND notified = 0"
        params: list[Any] = [time.time(), int(task_id)]
        if due_at is not _UNSET:
            sql += " AND due_at IS ?"
            params.append(float(due_at) if due_at is not None else None)

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
