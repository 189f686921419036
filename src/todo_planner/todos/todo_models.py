# src/todo_planner/todos/todo_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TodoStatus(StrEnum):
    """Todo lifecycle status."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TodoStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO

    @classmethod
    def parse(cls, raw: str) -> TodoStatus:
        """Accept user input like "in progress", "In-Progress", "DONE"."""
        key = "_".join(str(raw or "").strip().lower().replace("-", " ").split())
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"unknown todo status: {raw!r}") from None


@dataclass(slots=True)
class User:
    id: int
    name: str
    push_token: str | None


@dataclass(slots=True)
class Todo:
    id: int
    user_id: int
    title: str
    start: datetime | None
    end: datetime | None
    category: str | None
    status: TodoStatus
    location: str | None
    together: str | None

    # Minutes the todo needs; used by the slot finder.
    input_time: int | None

    created_at: float
    updated_at: float


@dataclass(slots=True, frozen=True)
class TodoDraft:
    """Create/update request for a todo."""

    title: str
    start: datetime | None = None
    end: datetime | None = None
    category: str | None = None
    location: str | None = None
    together: str | None = None


@dataclass(slots=True, frozen=True)
class TodoDate:
    todo_id: int
    title: str
    start: datetime | None
    end: datetime | None


@dataclass(slots=True, frozen=True)
class PriorityRecord:
    todo_id: int
    priority_score: float


@dataclass(slots=True, frozen=True)
class Booking:
    """An existing commitment the slot finder must avoid."""

    user_id: int
    start: datetime
    end: datetime


@dataclass(slots=True, frozen=True)
class AvailableTimeSlots:
    slots: tuple[datetime, ...] = ()

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self):
        return iter(self.slots)


@dataclass(slots=True, frozen=True)
class CoordinationMessage:
    """Payload broadcast when a todo is proposed for schedule coordination."""

    label: str
    todo_id: int
    message: str
    todo_title: str
    start: str
    end: str
