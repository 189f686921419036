# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from todo_planner.core.errors import NotificationSchedulingError
from todo_planner.core.ports import ChatMessage
from todo_planner.notifications.push_models import PushMessage


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Yields a predefined text as a single chunk
    """

    def __init__(self, next_text: str = "{}") -> None:
        self.next_text = next_text
        self.calls: list[tuple[list[ChatMessage], str]] = []

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        self.calls.append((messages, system_prompt))
        yield self.next_text


@dataclass(slots=True)
class ScheduledCall:
    fire_at: datetime | None
    recipient_token: str | None
    message: str
    todo_id: int


@dataclass(slots=True)
class FakeNotificationScheduler:
    """Records schedule() calls; raises NotificationSchedulingError when fail=True."""

    fail: bool = False
    calls: list[ScheduledCall] = field(default_factory=list)
    cancelled: list[int] = field(default_factory=list)

    def schedule(
        self,
        *,
        fire_at: datetime | None,
        recipient_token: str | None,
        message: str,
        todo_id: int,
    ) -> int:
        if self.fail:
            raise NotificationSchedulingError("scheduler is down")
        self.calls.append(
            ScheduledCall(fire_at=fire_at, recipient_token=recipient_token, message=message, todo_id=todo_id)
        )
        return len(self.calls)

    def cancel(self, todo_id: int) -> int:
        self.cancelled.append(todo_id)
        before = len(self.calls)
        self.calls = [c for c in self.calls if c.todo_id != todo_id]
        return before - len(self.calls)


@dataclass(slots=True)
class FakeBroadcast:
    published: list[tuple[str, Any]] = field(default_factory=list)

    def publish(self, topic: str, message: Any) -> None:
        self.published.append((topic, message))


@dataclass(slots=True)
class FakePushSender:
    """
    Fake PushSender used by dispatcher tests.

    The first `failures` sends raise RuntimeError, later ones succeed.
    """

    failures: int = 0
    sent: list[PushMessage] = field(default_factory=list)
    attempts: int = 0

    async def send(self, message: PushMessage) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise RuntimeError("gateway unavailable")
        self.sent.append(message)
