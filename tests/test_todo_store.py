# tests/test_todo_store.py

from __future__ import annotations

from datetime import date, datetime

import pytest

from todo_planner.todos.scoring import priority_score
from todo_planner.todos.todo_models import TodoDraft, TodoStatus
from todo_planner.todos.todo_store import TodoStore

NOW = datetime(2024, 3, 4, 9, 0)


def _draft(title: str, start: datetime | None = None, end: datetime | None = None, **kw) -> TodoDraft:
    return TodoDraft(title=title, start=start, end=end, **kw)


def test_users_and_ensure_user(todo_store: TodoStore) -> None:
    uid = todo_store.add_user(name="  alice ", push_token="tok-a")
    user = todo_store.get_user(uid)
    assert user is not None
    assert user.name == "alice"
    assert user.push_token == "tok-a"

    ensured = todo_store.ensure_user(user_id=uid, name="other", push_token=None)
    assert ensured == user

    created = todo_store.ensure_user(user_id=42, name="bob", push_token="tok-b")
    assert created.id == 42
    assert todo_store.get_user(42) == created
    assert todo_store.get_user(999) is None


def test_add_get_update_delete_todo(todo_store: TodoStore) -> None:
    uid = todo_store.add_user(name="alice")
    start = datetime(2024, 3, 4, 15, 0, 30, 123)
    todo_id = todo_store.add_todo(
        user_id=uid,
        draft=_draft("dentist", start, datetime(2024, 3, 4, 16, 0), category="health", location="downtown"),
    )

    todo = todo_store.get_todo(todo_id)
    assert todo is not None
    assert todo.title == "dentist"
    assert todo.start == datetime(2024, 3, 4, 15, 0, 30)
    assert todo.status == TodoStatus.TODO
    assert todo.category == "health"
    assert todo.location == "downtown"
    assert todo.input_time is None

    todo_store.update_todo(todo_id, _draft("dentist (moved)", datetime(2024, 3, 5, 9, 0), datetime(2024, 3, 5, 10, 0)))
    todo_store.update_todo_fields(todo_id, status=TodoStatus.IN_PROGRESS, input_time=45)

    todo = todo_store.get_todo(todo_id)
    assert todo is not None
    assert todo.title == "dentist (moved)"
    assert todo.start == datetime(2024, 3, 5, 9, 0)
    assert todo.category is None
    assert todo.status == TodoStatus.IN_PROGRESS
    assert todo.input_time == 45

    todo_store.delete_todo(todo_id)
    assert todo_store.get_todo(todo_id) is None
    assert todo_store.count_todos() == 0


def test_add_todo_requires_title(todo_store: TodoStore) -> None:
    with pytest.raises(ValueError):
        todo_store.add_todo(user_id=1, draft=_draft("   "))


def test_filters(todo_store: TodoStore) -> None:
    a = todo_store.add_todo(user_id=1, draft=_draft("a", datetime(2024, 3, 4, 10), category="work"))
    b = todo_store.add_todo(user_id=1, draft=_draft("b", datetime(2024, 3, 5, 10), category="home"))
    c = todo_store.add_todo(user_id=1, draft=_draft("c"), status=TodoStatus.DONE)
    todo_store.add_todo(user_id=2, draft=_draft("other", datetime(2024, 3, 4, 11), category="work"))

    assert [t.id for t in todo_store.list_todos(1)] == [a, b, c]
    assert [t.id for t in todo_store.find_by_status(TodoStatus.DONE, 1)] == [c]
    assert [t.id for t in todo_store.find_by_date(date(2024, 3, 4), 1)] == [a]
    assert [t.id for t in todo_store.find_by_category("work", 1)] == [a]
    assert [d.todo_id for d in todo_store.list_todo_dates(1)] == [a, b, c]


def test_get_todos_by_ids_skips_missing(todo_store: TodoStore) -> None:
    a = todo_store.add_todo(user_id=1, draft=_draft("a"))
    b = todo_store.add_todo(user_id=1, draft=_draft("b"))

    found = todo_store.get_todos_by_ids([b, 999, a])
    assert sorted(t.id for t in found) == [a, b]
    assert todo_store.get_todos_by_ids([]) == []


def test_calculate_priority_orders_open_todos(todo_store: TodoStore) -> None:
    soon = todo_store.add_todo(user_id=1, draft=_draft("soon", datetime(2024, 3, 4, 10)))
    later = todo_store.add_todo(user_id=1, draft=_draft("later", datetime(2024, 3, 8, 10)))
    overdue = todo_store.add_todo(user_id=1, draft=_draft("overdue", datetime(2024, 3, 3, 10)))
    todo_store.add_todo(user_id=1, draft=_draft("done", datetime(2024, 3, 4, 9)), status=TodoStatus.DONE)

    records = todo_store.calculate_priority(1, now=NOW)

    assert [r.todo_id for r in records] == [overdue, soon, later]
    assert records[0].priority_score == pytest.approx(10.0)
    assert records[2].priority_score == pytest.approx(0.0)
    assert [r.todo_id for r in todo_store.calculate_priority(1, now=NOW, limit=2)] == [overdue, soon]


def test_priority_score_ramp_and_bonus(todo_store: TodoStore) -> None:
    todo_id = todo_store.add_todo(user_id=1, draft=_draft("x", datetime(2024, 3, 5, 21, 0)))
    todo = todo_store.get_todo(todo_id)
    assert todo is not None

    # 36h out -> half urgency
    assert priority_score(todo, NOW) == pytest.approx(5.0)

    todo_store.update_todo_fields(todo_id, status=TodoStatus.IN_PROGRESS)
    todo = todo_store.get_todo(todo_id)
    assert todo is not None
    assert priority_score(todo, NOW) == pytest.approx(7.0)


def test_list_bookings_window(todo_store: TodoStore) -> None:
    todo_store.add_todo(user_id=1, draft=_draft("in", datetime(2024, 3, 4, 12), datetime(2024, 3, 4, 13)))
    todo_store.add_todo(user_id=1, draft=_draft("edge", datetime(2024, 3, 6, 21), datetime(2024, 3, 6, 22)))
    todo_store.add_todo(user_id=1, draft=_draft("before", datetime(2024, 3, 4, 9), datetime(2024, 3, 4, 10)))
    todo_store.add_todo(user_id=1, draft=_draft("no end", datetime(2024, 3, 4, 14)))
    todo_store.add_todo(user_id=2, draft=_draft("theirs", datetime(2024, 3, 4, 15), datetime(2024, 3, 4, 16)))

    bookings = todo_store.list_bookings(1, datetime(2024, 3, 4, 10), datetime(2024, 3, 6, 21))

    assert [(b.start, b.end) for b in bookings] == [
        (datetime(2024, 3, 4, 12), datetime(2024, 3, 4, 13)),
        (datetime(2024, 3, 6, 21), datetime(2024, 3, 6, 22)),
    ]
    assert all(b.user_id == 1 for b in bookings)
