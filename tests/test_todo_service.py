# tests/test_todo_service.py

from __future__ import annotations

import time
from datetime import datetime

import pytest

from todo_planner.core.errors import NotFoundError, NotificationSchedulingError, NotTodoOwnerError
from todo_planner.notifications.notification_scheduler import StoreNotificationScheduler
from todo_planner.notifications.notification_store import NotificationStore
from todo_planner.todos.todo_models import CoordinationMessage, TodoDraft, TodoStatus
from todo_planner.todos.todo_service import COORDINATION_TEXT, TodoService
from todo_planner.todos.todo_store import TodoStore

from .fakes import FakeBroadcast, FakeLLMClient, FakeNotificationScheduler

NOW = datetime(2024, 3, 4, 9, 0)


@pytest.fixture()
def scheduler() -> FakeNotificationScheduler:
    return FakeNotificationScheduler()


@pytest.fixture()
def broadcast() -> FakeBroadcast:
    return FakeBroadcast()


@pytest.fixture()
def service(todo_store: TodoStore, scheduler: FakeNotificationScheduler, broadcast: FakeBroadcast) -> TodoService:
    todo_store.ensure_user(user_id=1, name="alice", push_token="tok-alice")
    todo_store.ensure_user(user_id=2, name="bob", push_token="tok-bob")
    return TodoService(todo_store, scheduler, broadcast, llm=FakeLLMClient('{"title": "call mom"}'))


def _draft(title: str, start: datetime | None = datetime(2024, 3, 4, 15), end: datetime | None = None) -> TodoDraft:
    if end is None and start is not None:
        end = start.replace(hour=start.hour + 1)
    return TodoDraft(title=title, start=start, end=end)


def test_create_todo_schedules_reminder(service: TodoService, scheduler: FakeNotificationScheduler) -> None:
    todo_id = service.create_todo(_draft("dentist"), 1)

    todo = service.get_todo(todo_id)
    assert todo.user_id == 1
    assert todo.status == TodoStatus.TODO

    assert len(scheduler.calls) == 1
    call = scheduler.calls[0]
    assert call.fire_at == datetime(2024, 3, 4, 15)
    assert call.recipient_token == "tok-alice"
    assert call.message == "dentist"
    assert call.todo_id == todo_id


def test_create_todo_for_unknown_user(service: TodoService) -> None:
    with pytest.raises(NotFoundError):
        service.create_todo(_draft("x"), 99)


def test_scheduling_failure_rolls_back(service: TodoService, scheduler: FakeNotificationScheduler) -> None:
    scheduler.fail = True

    with pytest.raises(NotificationSchedulingError):
        service.create_todo(_draft("dentist"), 1)

    assert service.get_todos(1) == []


def test_update_and_delete_require_owner(service: TodoService) -> None:
    todo_id = service.create_todo(_draft("dentist"), 1)

    with pytest.raises(NotTodoOwnerError):
        service.update_todo(_draft("hijacked"), todo_id, 2)
    with pytest.raises(NotTodoOwnerError):
        service.delete_todo(todo_id, 2)

    service.update_todo(_draft("dentist (moved)", datetime(2024, 3, 5, 9)), todo_id, 1)
    assert service.get_todo(todo_id).title == "dentist (moved)"

    service.delete_todo(todo_id, 1)
    with pytest.raises(NotFoundError):
        service.find_by_id(todo_id)


def test_update_status(service: TodoService) -> None:
    todo_id = service.create_todo(_draft("dentist"), 1)

    service.update_status(todo_id, "in progress")
    assert service.get_todo(todo_id).status == TodoStatus.IN_PROGRESS

    service.update_status(todo_id, TodoStatus.DONE)
    assert [t.id for t in service.get_todos_by_status(TodoStatus.DONE, 1)] == [todo_id]

    with pytest.raises(ValueError):
        service.update_status(todo_id, "todo")
    with pytest.raises(ValueError):
        service.update_status(todo_id, "someday")
    with pytest.raises(NotFoundError):
        service.update_status(999, TodoStatus.DONE)


def test_set_input_time(service: TodoService) -> None:
    todo_id = service.create_todo(_draft("dentist"), 1)

    service.set_input_time(todo_id, 90, 1)
    assert service.get_todo(todo_id).input_time == 90

    with pytest.raises(ValueError):
        service.set_input_time(todo_id, 0, 1)
    with pytest.raises(NotTodoOwnerError):
        service.set_input_time(todo_id, 30, 2)


def test_coordinate_todo_publishes_message(service: TodoService, broadcast: FakeBroadcast) -> None:
    todo_id = service.coordinate_todo(_draft("team sync", datetime(2024, 3, 4, 14, 30)), 1)

    assert len(broadcast.published) == 1
    topic, message = broadcast.published[0]
    assert topic == "/sub/chatroom/coordination"
    assert message == CoordinationMessage(
        label="answer",
        todo_id=todo_id,
        message=COORDINATION_TEXT,
        todo_title="team sync",
        start="2024-03-04 14:30",
        end="2024-03-04 15:30",
    )


def test_create_todo_from_sentence(service: TodoService, scheduler: FakeNotificationScheduler) -> None:
    todo_id = service.create_todo_from_sentence("call mom tonight", 1, now=NOW)

    todo = service.get_todo(todo_id)
    assert todo.title == "call mom"
    assert todo.start == datetime(2024, 3, 4, 10)
    assert todo.end == datetime(2024, 3, 4, 11)
    assert scheduler.calls == []


def test_create_todo_from_sentence_without_llm(
    todo_store: TodoStore, scheduler: FakeNotificationScheduler, broadcast: FakeBroadcast
) -> None:
    todo_store.ensure_user(user_id=1, name="alice", push_token="tok")
    service = TodoService(todo_store, scheduler, broadcast)
    with pytest.raises(RuntimeError):
        service.create_todo_from_sentence("anything", 1)


def test_queries(service: TodoService) -> None:
    a = service.create_todo(TodoDraft(title="a", start=datetime(2024, 3, 4, 10), category="work"), 1)
    b = service.create_todo(TodoDraft(title="b", start=datetime(2024, 3, 5, 10), category="home"), 1)
    service.create_todo(_draft("bob's"), 2)

    assert [t.id for t in service.get_todos(1)] == [a, b]
    assert [t.id for t in service.get_todos_by_date(datetime(2024, 3, 5).date(), 1)] == [b]
    assert [t.id for t in service.get_todos_by_category("work", 1)] == [a]
    assert [d.todo_id for d in service.get_todo_dates(b)] == [a, b]


def test_priorities_follow_urgency(service: TodoService) -> None:
    later = service.create_todo(_draft("later", datetime(2024, 3, 6, 10)), 1)
    soon = service.create_todo(_draft("soon", datetime(2024, 3, 4, 10)), 1)
    mid = service.create_todo(_draft("mid", datetime(2024, 3, 5, 10)), 1)
    done = service.create_todo(_draft("done", datetime(2024, 3, 4, 11)), 1)
    service.update_status(done, TodoStatus.DONE)

    ordered = service.get_priorities(1, now=NOW)

    assert [t.id for t in ordered] == [soon, mid, later]


def test_priorities_drop_ids_the_repo_no_longer_has(
    todo_store: TodoStore, scheduler: FakeNotificationScheduler, broadcast: FakeBroadcast
) -> None:
    todo_store.ensure_user(user_id=1, name="alice", push_token="tok")
    def reversed_with_stale_id(graph):
        return [999, *sorted(graph.nodes, reverse=True)]

    service = TodoService(todo_store, scheduler, broadcast, order_solver=reversed_with_stale_id)
    first = service.create_todo(_draft("first"), 1)
    second = service.create_todo(_draft("second"), 1)

    assert [t.id for t in service.get_priorities(1, now=NOW)] == [second, first]


def test_priorities_for_user_without_todos(service: TodoService) -> None:
    assert service.get_priorities(2, now=NOW) == []


def test_find_available_time_slots(service: TodoService) -> None:
    todo_id = service.create_todo(_draft("study", datetime(2024, 3, 4, 10), datetime(2024, 3, 4, 11)), 1)
    service.create_todo(_draft("lunch", datetime(2024, 3, 4, 12), datetime(2024, 3, 4, 13)), 1)
    service.create_todo(_draft("bob's", datetime(2024, 3, 4, 11), datetime(2024, 3, 4, 15)), 2)
    service.set_input_time(todo_id, 60, 1)

    found = service.find_available_time_slots(todo_id)

    assert list(found) == [datetime(2024, 3, 4, 13), datetime(2024, 3, 4, 14), datetime(2024, 3, 4, 15)]


def test_find_available_time_slots_needs_start_and_input_time(
    service: TodoService, todo_store: TodoStore
) -> None:
    no_input = service.create_todo(_draft("study"), 1)
    with pytest.raises(ValueError):
        service.find_available_time_slots(no_input)

    no_start = todo_store.add_todo(user_id=1, draft=TodoDraft(title="someday"), input_time=30)
    with pytest.raises(ValueError):
        service.find_available_time_slots(no_start)

    with pytest.raises(NotFoundError):
        service.find_available_time_slots(999)


@pytest.fixture()
def queued_service(todo_store: TodoStore, notification_store: NotificationStore) -> TodoService:
    todo_store.ensure_user(user_id=1, name="alice", push_token="tok-alice")
    return TodoService(todo_store, StoreNotificationScheduler(notification_store), FakeBroadcast())


def _due_todo_ids(store: NotificationStore) -> list[int]:
    return [n.todo_id for n in store.list_due(now_ts=time.time() + 1e9)]


def test_delete_todo_cancels_its_reminder(queued_service: TodoService, notification_store: NotificationStore) -> None:
    keep = queued_service.create_todo(_draft("keep"), 1)
    gone = queued_service.create_todo(_draft("gone"), 1)

    queued_service.delete_todo(gone, 1)

    assert _due_todo_ids(notification_store) == [keep]


def test_update_todo_moves_its_reminder(queued_service: TodoService, notification_store: NotificationStore) -> None:
    todo_id = queued_service.create_todo(_draft("dentist"), 1)
    new_start = datetime(2024, 3, 6, 9)

    queued_service.update_todo(_draft("dentist (moved)", new_start), todo_id, 1)

    due = notification_store.list_due(now_ts=time.time() + 1e9)
    assert len(due) == 1
    assert due[0].todo_id == todo_id
    assert due[0].message == "dentist (moved)"
    assert due[0].fire_at == pytest.approx(new_start.timestamp())


def test_update_todo_without_start_drops_reminder(
    queued_service: TodoService, notification_store: NotificationStore
) -> None:
    todo_id = queued_service.create_todo(_draft("dentist"), 1)

    queued_service.update_todo(TodoDraft(title="dentist, some day"), todo_id, 1)

    assert _due_todo_ids(notification_store) == []
