# src/todo_planner/notifications/notification_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path

from .push_models import NotificationStatus, ScheduledNotification

logger = logging.getLogger(__name__)


class NotificationStore:
    """
    SQLite queue of one-shot push notifications.

    Same conventions as TodoStore: create-if-missing schema, additive migrations,
    one short-lived connection per call.
    """

    def __init__(self, db_path: str | Path = "notifications.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count()
        except sqlite3.Error:
            total = -1
        logger.info("NotificationStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        return

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    fire_at REAL NOT NULL,
                    recipient_token TEXT NOT NULL,
                    message TEXT NOT NULL,
                    todo_id INTEGER NOT NULL,
                    attempts INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    last_error TEXT
                )
                """
            )

            cur.execute("PRAGMA table_info(notifications)")
            cols = {row["name"] for row in cur.fetchall()}
            if "last_error" not in cols:
                cur.execute("ALTER TABLE notifications ADD COLUMN last_error TEXT")
                logger.info("NotificationStore migration: added column last_error")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_notifications_due ON notifications(status, fire_at)"
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_notification(row: sqlite3.Row) -> ScheduledNotification:
        return ScheduledNotification(
            id=int(row["id"]),
            status=NotificationStatus.from_db(row["status"]),
            fire_at=float(row["fire_at"]),
            recipient_token=str(row["recipient_token"]),
            message=str(row["message"]),
            todo_id=int(row["todo_id"]),
            attempts=int(row["attempts"] or 0),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            last_error=row["last_error"],
        )

    def count(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM notifications").fetchone()
            return int(n)
        finally:
            conn.close()

    def add(self, *, fire_at: float, recipient_token: str, message: str, todo_id: int) -> int:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO notifications(
                    status, fire_at, recipient_token, message, todo_id,
                    attempts, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    NotificationStatus.PENDING.value,
                    float(fire_at),
                    recipient_token,
                    message,
                    int(todo_id),
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for notifications insert")
            return int(rowid)
        finally:
            conn.close()

    def get(self, notification_id: int) -> ScheduledNotification | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM notifications WHERE id = ?", (int(notification_id),)
            ).fetchone()
            return self._row_to_notification(row) if row else None
        finally:
            conn.close()

    def list_due(self, *, now_ts: float, limit: int = 32) -> list[ScheduledNotification]:
        """Pending notifications whose fire_at has passed, oldest first."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT *
                FROM notifications
                WHERE status = 'pending'
                  AND fire_at <= ?
                ORDER BY fire_at ASC, id ASC
                    LIMIT ?
                """,
                (float(now_ts), int(limit)),
            ).fetchall()
            return [self._row_to_notification(r) for r in rows]
        finally:
            conn.close()

    def try_claim(self, notification_id: int, *, expected: Iterable[NotificationStatus]) -> bool:
        """
        Best-effort claim: status IN expected -> in_progress.

        Returns True if the row was claimed by this caller.
        """
        exp = [e.value for e in expected]
        if not exp:
            return False

        conn = self._get_conn()
        try:
            placeholders = ",".join("?" for _ in exp)
            cur = conn.execute(
                f"""
                UPDATE notifications
                SET status = 'in_progress', updated_at = ?
                WHERE id = ?
                  AND status IN ({placeholders})
                """,
                (time.time(), int(notification_id), *exp),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def mark_sent(self, notification_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE notifications
                SET status = 'sent', attempts = attempts + 1, updated_at = ?
                WHERE id = ?
                """,
                (time.time(), int(notification_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def reschedule(self, notification_id: int, *, fire_at: float, error: str | None = None) -> None:
        """Back to pending with a later fire_at; counts one failed attempt."""
        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE notifications
                SET status = 'pending', fire_at = ?, attempts = attempts + 1,
                    last_error = ?, updated_at = ?
                WHERE id = ?
                """,
                (float(fire_at), error, time.time(), int(notification_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def mark_failed(self, notification_id: int, *, error: str | None = None) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE notifications
                SET status = 'failed', attempts = attempts + 1, last_error = ?, updated_at = ?
                WHERE id = ?
                """,
                (error, time.time(), int(notification_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def release_claim(self, notification_id: int) -> None:
        """in_progress -> pending without counting an attempt (interrupted send)."""
        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE notifications
                SET status = 'pending', updated_at = ?
                WHERE id = ?
                  AND status = 'in_progress'
                """,
                (time.time(), int(notification_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def cancel_for_todo(self, todo_id: int) -> int:
        """Cancel every not-yet-delivered notification of a todo. Returns the row count."""
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE notifications
                SET status = 'cancelled', updated_at = ?
                WHERE todo_id = ?
                  AND status IN ('pending', 'in_progress')
                """,
                (time.time(), int(todo_id)),
            )
            conn.commit()
            return int(cur.rowcount)
        finally:
            conn.close()
