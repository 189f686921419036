# src/todo_planner/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The todo service depends on Protocols instead of concrete implementations.
This keeps storage/notifications/broadcast/LLM providers swappable and makes
testing easier (hand-built graphs, in-memory repos, fake senders).
"""

from collections.abc import Awaitable, Callable, Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..notifications.push_models import PushMessage
    from ..planner.graph import Graph
    from ..todos.todo_models import (
        Booking,
        PriorityRecord,
        Todo,
        TodoDate,
        TodoDraft,
        TodoStatus,
        User,
    )

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.

OrderSolver = Callable[["Graph"], list[int]]
# Any function Graph -> permutation of todo ids.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class PriorityQuery(Protocol):
    def calculate_priority(
            self,
            user_id: int,
            *,
            now: datetime | None = None,
            limit: int = 64,
    ) -> list[PriorityRecord]: ...


class TodoLookup(Protocol):
    """Re-hydration by id list. Missing ids are omitted, not an error."""
    def get_todos_by_ids(self, todo_ids: Iterable[int]) -> list[Todo]: ...


class BookingLookup(Protocol):
    def list_bookings(self, user_id: int, start: datetime, end: datetime) -> list[Booking]: ...


class TodoRepo(PriorityQuery, TodoLookup, BookingLookup, Protocol):
    # Users
    def get_user(self, user_id: int) -> User | None: ...

    # Writes
    def add_todo(
            self,
            *,
            user_id: int,
            draft: TodoDraft,
            status: TodoStatus = ...,
            input_time: int | None = None,
    ) -> int: ...
    def update_todo(self, todo_id: int, draft: TodoDraft) -> None: ...
    def update_todo_fields(
            self,
            todo_id: int,
            *,
            status: TodoStatus | None = None,
            input_time: int | None = None,
    ) -> None: ...
    def delete_todo(self, todo_id: int) -> None: ...

    # Reads
    def get_todo(self, todo_id: int) -> Todo | None: ...
    def list_todos(self, user_id: int) -> list[Todo]: ...
    def find_by_status(self, status: TodoStatus, user_id: int) -> list[Todo]: ...
    def find_by_date(self, day: date, user_id: int) -> list[Todo]: ...
    def find_by_category(self, category: str, user_id: int) -> list[Todo]: ...
    def list_todo_dates(self, user_id: int) -> list[TodoDate]: ...


class NotificationScheduler(Protocol):
    """
    Arranges a one-shot push at fire_at.

    Implementations raise NotificationSchedulingError when the push cannot be queued.
    cancel() drops every undelivered push of a todo and returns how many it dropped.
    """

    def schedule(
            self,
            *,
            fire_at: datetime,
            recipient_token: str | None,
            message: str,
            todo_id: int,
    ) -> int: ...

    def cancel(self, todo_id: int) -> int: ...


class BroadcastChannel(Protocol):
    """Realtime topic fan-out. Fire-and-forget from the caller's perspective."""
    def publish(self, topic: str, message: Any) -> None: ...


class PushSender(Protocol):
    """Delivery side of notifications (FCM-like gateway, console, ...)."""
    def send(self, message: PushMessage) -> Awaitable[None]: ...
