# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_planner.cli.bootstrap import create_initial_state
from todo_planner.core.state import AppState
from todo_planner.notifications.notification_store import NotificationStore
from todo_planner.todos.todo_store import TodoStore

from .fakes import FakeLLMClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's .env.
    """
    return SimpleNamespace(
        app_name="todo-planner",
        log_level="INFO",
        console_enabled=False,
        # Paths (tmp per test run)
        data_dir=tmp_path,
        todos_db_path=tmp_path / "todos.sqlite3",
        notifications_db_path=tmp_path / "notifications.sqlite3",
        # Console user
        default_user_id=1,
        default_user_name="me",
        default_push_token="console",
        # Planner
        coordination_topic="/sub/chatroom/coordination",
        priority_limit=64,
        workday_start_hour=10,
        workday_end_hour=21,
        slot_horizon_days=3,
        slot_limit=3,
        # Push
        push_endpoint=None,
        push_auth_token=None,
    )


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient('{"title": "water the plants"}')


@pytest.fixture()
def state(settings: SimpleNamespace, llm: FakeLLMClient) -> AppState:
    """
    AppState wired through the real composition root.

    Real SQLite stores are kept because their correctness is part of what we
    want to test; only the LLM is faked.
    """
    return create_initial_state(settings=settings, llm=llm)


@pytest.fixture()
def todo_store(tmp_path: Path) -> TodoStore:
    return TodoStore(tmp_path / "store-todos.sqlite3")


@pytest.fixture()
def notification_store(tmp_path: Path) -> NotificationStore:
    return NotificationStore(tmp_path / "store-notifications.sqlite3")
