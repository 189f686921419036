# src/todo_planner/notifications/notification_scheduler.py

from __future__ import annotations

"""
Notification scheduler.

Two halves:
- StoreNotificationScheduler: the NotificationScheduler port; queues a one-shot push
  in NotificationStore.
- run_notification_dispatcher: a small polling loop that fetches due notifications,
  claims them (best-effort), sends them via an injected PushSender, and marks them
  sent or reschedules them on failure.

Delivery details (FCM, HTTP gateway, console) belong to the sender, not the loop.
"""

import asyncio
import logging
import sqlite3
import time
from datetime import datetime

from ..core.errors import NotificationSchedulingError
from ..core.ports import PushSender
from .notification_store import NotificationStore
from .push_models import NotificationStatus, PushMessage, PushNotification, ScheduledNotification

logger = logging.getLogger(__name__)


class StoreNotificationScheduler:
    """NotificationScheduler backed by the SQLite notification queue."""

    def __init__(self, store: NotificationStore) -> None:
        self._store = store

    def schedule(
            self,
            *,
            fire_at: datetime | None,
            recipient_token: str | None,
            message: str,
            todo_id: int,
    ) -> int:
        if fire_at is None:
            raise NotificationSchedulingError(f"todo {todo_id} has no start time to notify at")
        token = (recipient_token or "").strip()
        if not token:
            raise NotificationSchedulingError(f"no push token for todo {todo_id}")
        text = (message or "").strip()
        if not text:
            raise NotificationSchedulingError(f"empty notification message for todo {todo_id}")

        try:
            notification_id = self._store.add(
                fire_at=fire_at.timestamp(),
                recipient_token=token,
                message=text,
                todo_id=int(todo_id),
            )
        except (sqlite3.Error, RuntimeError) as e:
            raise NotificationSchedulingError(f"failed to queue notification for todo {todo_id}") from e

        logger.info(
            "Notification scheduled id=%s todo_id=%s fire_at=%s",
            notification_id,
            todo_id,
            fire_at.isoformat(timespec="minutes"),
        )
        return notification_id

    def cancel(self, todo_id: int) -> int:
        try:
            cancelled = self._store.cancel_for_todo(int(todo_id))
        except sqlite3.Error as e:
            raise NotificationSchedulingError(f"failed to cancel notifications for todo {todo_id}") from e
        if cancelled:
            logger.info("Notifications cancelled todo_id=%s count=%d", todo_id, cancelled)
        return cancelled


def build_push_message(notification: ScheduledNotification, *, title: str) -> PushMessage:
    return PushMessage(
        token=notification.recipient_token,
        notification=PushNotification(title=title, body=notification.message),
        data={"todo_id": str(notification.todo_id)},
    )


async def dispatch_due_notifications(
        store: NotificationStore,
        sender: PushSender,
        *,
        now_ts: float | None = None,
        retry_delay_seconds: float = 60.0,
        batch_limit: int = 32,
        max_attempts: int = 5,
        title: str = "todo-planner",
) -> int:
    """
    One polling pass. Returns how many notifications were delivered.

    On send failure the notification goes back to pending with fire_at pushed
    forward by retry_delay_seconds, until max_attempts is reached (then failed).
    """
    if now_ts is None:
        now_ts = time.time()
    retry_s = max(0.0, float(retry_delay_seconds))

    try:
        due = store.list_due(now_ts=now_ts, limit=int(batch_limit))
    except sqlite3.Error:
        logger.exception("list_due failed")
        return 0

    delivered = 0
    for notification in due:
        nid = notification.id

        try:
            claimed = store.try_claim(nid, expected=[NotificationStatus.PENDING])
        except sqlite3.Error:
            logger.exception("try_claim failed notification_id=%s", nid)
            continue

        if not claimed:
            continue

        push = build_push_message(notification, title=title)

        try:
            await sender.send(push)
        except asyncio.CancelledError:
            # Shutdown mid-send: hand the row back so the next run delivers it.
            try:
                store.release_claim(nid)
            except sqlite3.Error:
                logger.exception("release_claim failed notification_id=%s", nid)
            raise
        except Exception as e:
            logger.exception("push send failed notification_id=%s todo_id=%s", nid, notification.todo_id)
            err = f"{e.__class__.__name__}: {e}"[:500]

            try:
                if notification.attempts + 1 >= max_attempts:
                    store.mark_failed(nid, error=err)
                    logger.warning("Notification %s failed permanently after %d attempts", nid, max_attempts)
                else:
                    store.reschedule(nid, fire_at=time.time() + retry_s, error=err)
            except sqlite3.Error:
                logger.exception("backoff update failed notification_id=%s", nid)
            continue

        try:
            store.mark_sent(nid)
        except sqlite3.Error:
            logger.exception("mark_sent failed notification_id=%s", nid)
            continue

        delivered += 1
        logger.info("Notification %s -> sent (todo_id=%s)", nid, notification.todo_id)

    return delivered


async def run_notification_dispatcher(
        store: NotificationStore,
        sender: PushSender,
        *,
        interval_seconds: float = 15.0,
        retry_delay_seconds: float = 60.0,
        batch_limit: int = 32,
        max_attempts: int = 5,
        title: str = "todo-planner",
) -> None:
    """
    Simple polling dispatcher.

    Every interval_seconds runs dispatch_due_notifications(). To stop the
    dispatcher, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        await dispatch_due_notifications(
            store,
            sender,
            retry_delay_seconds=retry_delay_seconds,
            batch_limit=batch_limit,
            max_attempts=max_attempts,
            title=title,
        )
        await asyncio.sleep(sleep_s)
