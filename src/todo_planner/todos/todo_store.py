# src/todo_planner/todos/todo_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

from .scoring import priority_score
from .todo_models import Booking, PriorityRecord, Todo, TodoDate, TodoDraft, TodoStatus, User

logger = logging.getLogger(__name__)


def _dt_to_str(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat(timespec="seconds")


def _str_to_dt(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        logger.warning("Unparsable datetime in todo store: %r", raw)
        return None


class TodoStore:
    """
    SQLite store for users and todos.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Datetimes are naive local time stored as ISO-8601 text (seconds precision),
    so lexicographic order equals chronological order.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "todos.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_todos()
        except sqlite3.Error:
            total = -1
        logger.info("TodoStore ready db=%s total=%s", self._db_path, total)

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
                    name TEXT NOT NULL,
                    push_token TEXT
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS todos (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    start_at TEXT,
                    end_at TEXT,
                    category TEXT,
                    status TEXT NOT NULL DEFAULT 'todo',
                    location TEXT,
                    together TEXT,
                    input_time INTEGER,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(todos)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE todos ADD COLUMN {name} {decl}")
                logger.info("TodoStore migration: added column %s", name)

            add_col("category", "TEXT")
            add_col("location", "TEXT")
            add_col("together", "TEXT")
            add_col("input_time", "INTEGER")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_todos_user_start ON todos(user_id, start_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_todos_user_status ON todos(user_id, status)")

            conn.commit()
        finally:
            conn.close()

    def _row_to_todo(self, row: sqlite3.Row) -> Todo:
        input_time = row["input_time"]
        return Todo(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            title=str(row["title"] or ""),
            start=_str_to_dt(row["start_at"]),
            end=_str_to_dt(row["end_at"]),
            category=row["category"],
            status=TodoStatus.from_db(row["status"]),
            location=row["location"],
            together=row["together"],
            input_time=int(input_time) if input_time is not None else None,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    def _select(self, sql: str, params: Iterable[Any]) -> list[Todo]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, tuple(params))
            return [self._row_to_todo(r) for r in cur.fetchall()]
        finally:
            conn.close()

    # ---- users ----

    def add_user(self, *, name: str, push_token: str | None = None, user_id: int | None = None) -> int:
        if not name or not name.strip():
            raise ValueError("name is required")

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if user_id is None:
                cur.execute("INSERT INTO users(name, push_token) VALUES (?, ?)", (name.strip(), push_token))
            else:
                cur.execute(
                    "INSERT INTO users(id, name, push_token) VALUES (?, ?, ?)",
                    (int(user_id), name.strip(), push_token),
                )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for users insert")
            return int(rowid)
        finally:
            conn.close()

    def ensure_user(self, *, user_id: int, name: str, push_token: str | None = None) -> User:
        """Get the user, creating it with the given id if it does not exist yet."""
        user = self.get_user(user_id)
        if user is not None:
            return user
        self.add_user(name=name, push_token=push_token, user_id=user_id)
        logger.info("Created user id=%s name=%s", user_id, name)
        return User(id=int(user_id), name=name.strip(), push_token=push_token)

    def get_user(self, user_id: int) -> User | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM users WHERE id = ?", (int(user_id),))
            row = cur.fetchone()
            if row is None:
                return None
            return User(id=int(row["id"]), name=str(row["name"]), push_token=row["push_token"])
        finally:
            conn.close()

    # ---- todos: writes ----

    def count_todos(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM todos")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def add_todo(
        self,
        *,
        user_id: int,
        draft: TodoDraft,
        status: TodoStatus = TodoStatus.TODO,
        input_time: int | None = None,
    ) -> int:
        if not draft.title or not draft.title.strip():
            raise ValueError("title is required")

        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO todos(
                    user_id, title, start_at, end_at, category, status,
                    location, together, input_time, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(user_id),
                    draft.title.strip(),
                    _dt_to_str(draft.start),
                    _dt_to_str(draft.end),
                    draft.category,
                    status.value,
                    draft.location,
                    draft.together,
                    input_time,
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for todos insert")
            todo_id = int(rowid)
            logger.debug("Todo added id=%s user_id=%s start=%s", todo_id, user_id, draft.start)
            return todo_id
        finally:
            conn.close()

    def update_todo(self, todo_id: int, draft: TodoDraft) -> None:
        if not draft.title or not draft.title.strip():
            raise ValueError("title is required")

        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE todos
                SET title = ?, start_at = ?, end_at = ?, category = ?,
                    location = ?, together = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    draft.title.strip(),
                    _dt_to_str(draft.start),
                    _dt_to_str(draft.end),
                    draft.category,
                    draft.location,
                    draft.together,
                    time.time(),
                    int(todo_id),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def update_todo_fields(
        self,
        todo_id: int,
        *,
        status: TodoStatus | None = None,
        input_time: int | None = None,
    ) -> None:
        fields: list[str] = []
        params: list[Any] = []

        if status is not None:
            fields.append("status = ?")
            params.append(status.value)

        if input_time is not None:
            fields.append("input_time = ?")
            params.append(int(input_time))

        if not fields:
            return

        fields.append("updated_at = ?")
        params.append(time.time())
        params.append(int(todo_id))

        sql = f"UPDATE todos SET {', '.join(fields)} WHERE id = ?"

        conn = self._get_conn()
        try:
            conn.execute(sql, params)
            conn.commit()
        finally:
            conn.close()

    def delete_todo(self, todo_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM todos WHERE id = ?", (int(todo_id),))
            conn.commit()
        finally:
            conn.close()

    # ---- todos: reads ----

    def get_todo(self, todo_id: int) -> Todo | None:
        rows = self._select("SELECT * FROM todos WHERE id = ?", (int(todo_id),))
        return rows[0] if rows else None

    def list_todos(self, user_id: int) -> list[Todo]:
        return self._select(
            "SELECT * FROM todos WHERE user_id = ? ORDER BY start_at IS NULL, start_at ASC, id ASC",
            (int(user_id),),
        )

    def find_by_status(self, status: TodoStatus, user_id: int) -> list[Todo]:
        return self._select(
            """
            SELECT * FROM todos
            WHERE user_id = ? AND status = ?
            ORDER BY start_at IS NULL, start_at ASC, id ASC
            """,
            (int(user_id), status.value),
        )

    def find_by_date(self, day: date, user_id: int) -> list[Todo]:
        lo = datetime.combine(day, datetime.min.time())
        hi = lo + timedelta(days=1)
        return self._select(
            """
            SELECT * FROM todos
            WHERE user_id = ? AND start_at >= ? AND start_at < ?
            ORDER BY start_at ASC, id ASC
            """,
            (int(user_id), _dt_to_str(lo), _dt_to_str(hi)),
        )

    def find_by_category(self, category: str, user_id: int) -> list[Todo]:
        return self._select(
            """
            SELECT * FROM todos
            WHERE user_id = ? AND category = ?
            ORDER BY start_at IS NULL, start_at ASC, id ASC
            """,
            (int(user_id), category),
        )

    def get_todos_by_ids(self, todo_ids: Iterable[int]) -> list[Todo]:
        """Todos for the given ids in no particular order; unknown ids are skipped."""
        ids = [int(i) for i in todo_ids]
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        return self._select(f"SELECT * FROM todos WHERE id IN ({placeholders})", ids)

    def calculate_priority(
        self,
        user_id: int,
        *,
        now: datetime | None = None,
        limit: int = 64,
    ) -> list[PriorityRecord]:
        """
        Priority records for the user's open (not done) todos.

        Highest scores first; at most `limit` records so callers can bound the
        cost of the order solver.
        """
        if now is None:
            now = datetime.now()

        todos = self._select(
            "SELECT * FROM todos WHERE user_id = ? AND status != ?",
            (int(user_id), TodoStatus.DONE.value),
        )
        records = [PriorityRecord(todo_id=t.id, priority_score=priority_score(t, now)) for t in todos]
        records.sort(key=lambda r: (-r.priority_score, r.todo_id))
        return records[: max(0, int(limit))]

    def list_bookings(self, user_id: int, start: datetime, end: datetime) -> list[Booking]:
        """Commitments of the user whose start lies within [start, end]."""
        todos = self._select(
            """
            SELECT * FROM todos
            WHERE user_id = ?
              AND start_at IS NOT NULL
              AND end_at IS NOT NULL
              AND start_at >= ?
              AND start_at <= ?
            ORDER BY start_at ASC
            """,
            (int(user_id), _dt_to_str(start), _dt_to_str(end)),
        )
        return [
            Booking(user_id=t.user_id, start=t.start, end=t.end)
            for t in todos
            if t.start is not None and t.end is not None
        ]

    def list_todo_dates(self, user_id: int) -> list[TodoDate]:
        return [
            TodoDate(todo_id=t.id, title=t.title, start=t.start, end=t.end)
            for t in self.list_todos(user_id)
        ]
