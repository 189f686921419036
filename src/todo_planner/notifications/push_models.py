# src/todo_planner/notifications/push_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class NotificationStatus(StrEnum):
    """
    Notification queue status.

    "in_progress" is a claim-lock to avoid duplicate delivery when several
    dispatchers poll the same queue.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, raw: str | None) -> NotificationStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


@dataclass(slots=True)
class ScheduledNotification:
    id: int
    status: NotificationStatus
    fire_at: float
    recipient_token: str
    message: str
    todo_id: int
    attempts: int
    created_at: float
    updated_at: float
    last_error: str | None = None


@dataclass(slots=True, frozen=True)
class PushNotification:
    title: str
    body: str
    image: str | None = None


@dataclass(slots=True, frozen=True)
class PushMessage:
    """Push payload in the shape of an FCM v1 send request."""

    token: str
    notification: PushNotification
    validate_only: bool = False
    data: dict[str, str] | None = None

    def to_payload(self) -> dict[str, Any]:
        notification: dict[str, Any] = {
            "title": self.notification.title,
            "body": self.notification.body,
        }
        if self.notification.image:
            notification["image"] = self.notification.image

        message: dict[str, Any] = {"token": self.token, "notification": notification}
        if self.data:
            message["data"] = dict(self.data)

        return {"validate_only": self.validate_only, "message": message}
