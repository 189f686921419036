# src/todo_planner/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..broadcast.channel import InMemoryBroadcastChannel
from ..notifications.notification_store import NotificationStore
from ..todos.todo_service import TodoService
from ..todos.todo_store import TodoStore


@dataclass
class AppState:
    """Everything a connector needs, wired once by the composition root."""

    settings: Any
    todo_store: TodoStore
    notification_store: NotificationStore
    broadcast: InMemoryBroadcastChannel
    service: TodoService

    # Console acts on behalf of one user.
    user_id: int = 1

    # Serializes command handling between the REPL and background threads.
    lock: threading.RLock = field(default_factory=threading.RLock)
