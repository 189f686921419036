# src/todo_planner/todos/todo_service.py

from __future__ import annotations

"""
Todo use cases.

The service owns no storage and no transport. It composes:
- a TodoRepo (users, todos, priority query, bookings),
- a NotificationScheduler (push at a todo's start),
- a BroadcastChannel (schedule coordination),
- an order solver (Graph -> list of todo ids),
- optionally an LLM client for one-sentence todos.
"""

import logging
from datetime import date, datetime

from ..core.errors import NotFoundError, NotificationSchedulingError, NotTodoOwnerError
from ..core.ports import BroadcastChannel, LLMClient, NotificationScheduler, OrderSolver, TodoRepo
from ..planner.graph import build_graph
from ..planner.order_solver import optimal_order
from ..planner.slot_finder import DEFAULT_SLOT_POLICY, SlotPolicy, find_available_slots, search_window
from ..text.sentence_parser import parse_todo_sentence
from .todo_models import (
    AvailableTimeSlots,
    CoordinationMessage,
    Todo,
    TodoDate,
    TodoDraft,
    TodoStatus,
    User,
)

logger = logging.getLogger(__name__)

DEFAULT_COORDINATION_TOPIC = "/sub/chatroom/coordination"
COORDINATION_TEXT = "I'd like to coordinate the schedule below."


def format_when(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")


class TodoService:
    def __init__(
        self,
        repo: TodoRepo,
        notifications: NotificationScheduler,
        broadcast: BroadcastChannel,
        *,
        order_solver: OrderSolver = optimal_order,
        llm: LLMClient | None = None,
        slot_policy: SlotPolicy = DEFAULT_SLOT_POLICY,
        coordination_topic: str = DEFAULT_COORDINATION_TOPIC,
        priority_limit: int = 64,
    ) -> None:
        self._repo = repo
        self._notifications = notifications
        self._broadcast = broadcast
        self._order_solver = order_solver
        self._llm = llm
        self._slot_policy = slot_policy
        self._coordination_topic = coordination_topic
        self._priority_limit = int(priority_limit)

    # ---- helpers ----

    def _check_user(self, user_id: int) -> User:
        user = self._repo.get_user(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found")
        return user

    def _owned_todo(self, todo_id: int, user_id: int) -> Todo:
        user = self._check_user(user_id)
        todo = self.find_by_id(todo_id)
        if todo.user_id != user.id:
            raise NotTodoOwnerError(f"user {user_id} does not own todo {todo_id}")
        return todo

    def _save_and_schedule(self, draft: TodoDraft, user: User) -> Todo:
        todo_id = self._repo.add_todo(user_id=user.id, draft=draft)
        try:
            self._notifications.schedule(
                fire_at=draft.start,
                recipient_token=user.push_token,
                message=draft.title,
                todo_id=todo_id,
            )
        except NotificationSchedulingError:
            # The todo is only useful with its reminder; undo the insert.
            self._repo.delete_todo(todo_id)
            logger.warning("Todo %s rolled back: notification could not be scheduled", todo_id)
            raise
        return self.find_by_id(todo_id)

    # ---- commands ----

    def create_todo(self, draft: TodoDraft, user_id: int) -> int:
        user = self._check_user(user_id)
        todo = self._save_and_schedule(draft, user)
        logger.info("Todo created id=%s user_id=%s", todo.id, user.id)
        return todo.id

    def update_todo(self, draft: TodoDraft, todo_id: int, user_id: int) -> int:
        todo = self._owned_todo(todo_id, user_id)
        self._repo.update_todo(todo.id, draft)

        # The reminder follows the new start.
        self._notifications.cancel(todo.id)
        if draft.start is not None:
            user = self._check_user(user_id)
            self._notifications.schedule(
                fire_at=draft.start,
                recipient_token=user.push_token,
                message=draft.title,
                todo_id=todo.id,
            )
        return todo.id

    def delete_todo(self, todo_id: int, user_id: int) -> None:
        todo = self._owned_todo(todo_id, user_id)
        self._notifications.cancel(todo.id)
        self._repo.delete_todo(todo.id)
        logger.info("Todo deleted id=%s user_id=%s", todo.id, user_id)

    def update_status(self, todo_id: int, status: str | TodoStatus) -> int:
        """Move a todo to in_progress or done."""
        todo = self.find_by_id(todo_id)
        new_status = status if isinstance(status, TodoStatus) else TodoStatus.parse(status)
        if new_status not in (TodoStatus.IN_PROGRESS, TodoStatus.DONE):
            raise ValueError(f"status must be in_progress or done, got {new_status.value!r}")
        self._repo.update_todo_fields(todo.id, status=new_status)
        return todo.id

    def set_input_time(self, todo_id: int, minutes: int, user_id: int) -> int:
        if int(minutes) <= 0:
            raise ValueError("input time must be a positive number of minutes")
        todo = self._owned_todo(todo_id, user_id)
        self._repo.update_todo_fields(todo.id, input_time=int(minutes))
        return todo.id

    def create_todo_from_sentence(self, sentence: str, user_id: int, *, now: datetime | None = None) -> int:
        if self._llm is None:
            raise RuntimeError("no LLM client configured for one-sentence todos")
        self._check_user(user_id)
        draft = parse_todo_sentence(self._llm, sentence, now=now)
        todo_id = self._repo.add_todo(user_id=user_id, draft=draft)
        logger.info("Todo created from sentence id=%s user_id=%s", todo_id, user_id)
        return todo_id

    def coordinate_todo(self, draft: TodoDraft, user_id: int) -> int:
        """Save + schedule like create_todo, then announce it on the coordination topic."""
        user = self._check_user(user_id)
        todo = self._save_and_schedule(draft, user)

        message = CoordinationMessage(
            label="answer",
            todo_id=todo.id,
            message=COORDINATION_TEXT,
            todo_title=todo.title,
            start=format_when(todo.start),
            end=format_when(todo.end),
        )
        self._broadcast.publish(self._coordination_topic, message)
        return todo.id

    # ---- queries ----

    def find_by_id(self, todo_id: int) -> Todo:
        todo = self._repo.get_todo(todo_id)
        if todo is None:
            raise NotFoundError(f"todo {todo_id} not found")
        return todo

    def get_todo(self, todo_id: int) -> Todo:
        return self.find_by_id(todo_id)

    def get_todos(self, user_id: int) -> list[Todo]:
        return self._repo.list_todos(user_id)

    def get_todos_by_status(self, status: TodoStatus, user_id: int) -> list[Todo]:
        return self._repo.find_by_status(status, user_id)

    def get_todos_by_date(self, day: date, user_id: int) -> list[Todo]:
        return self._repo.find_by_date(day, user_id)

    def get_todos_by_category(self, category: str, user_id: int) -> list[Todo]:
        return self._repo.find_by_category(category, user_id)

    def get_todo_dates(self, todo_id: int) -> list[TodoDate]:
        todo = self.find_by_id(todo_id)
        return self._repo.list_todo_dates(todo.user_id)

    def get_priorities(self, user_id: int, *, now: datetime | None = None) -> list[Todo]:
        """
        The user's open todos in recommended order.

        Ids the solver returns but the repo no longer has are dropped silently.
        """
        records = self._repo.calculate_priority(user_id, now=now, limit=self._priority_limit)
        graph = build_graph(records)
        order = self._order_solver(graph)
        logger.info("Optimal order user_id=%s: %s", user_id, order)

        by_id = {t.id: t for t in self._repo.get_todos_by_ids(order)}
        return [by_id[todo_id] for todo_id in order if todo_id in by_id]

    def find_available_time_slots(self, todo_id: int) -> AvailableTimeSlots:
        todo = self.find_by_id(todo_id)
        if todo.start is None:
            raise ValueError(f"todo {todo_id} has no start date")
        if not todo.input_time:
            raise ValueError(f"todo {todo_id} has no input time; set it first")

        target_date = todo.start.date()
        window_start, window_end = search_window(target_date, self._slot_policy)
        bookings = self._repo.list_bookings(todo.user_id, window_start, window_end)

        return find_available_slots(target_date, todo.input_time, bookings, self._slot_policy)
