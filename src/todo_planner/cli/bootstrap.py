# src/todo_planner/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (stores, notifications, broadcast, LLM),
- makes sure the console user exists.
"""

from __future__ import annotations

import logging

from ..broadcast.channel import InMemoryBroadcastChannel
from ..config import get_settings
from ..core.ports import LLMClient, PushSender
from ..core.state import AppState
from ..llm.client import OpenRouterLLMClient
from ..llm.offline import OfflineLLMClient
from ..notifications.notification_scheduler import StoreNotificationScheduler
from ..notifications.notification_store import NotificationStore
from ..notifications.push_sender import ConsolePushSender, HttpPushSender
from ..planner.slot_finder import SlotPolicy
from ..todos.todo_service import TodoService
from ..todos.todo_store import TodoStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.todos_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.notifications_db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_llm(settings) -> LLMClient:
    try:
        return OpenRouterLLMClient(settings)
    except RuntimeError as e:
        # Local runs without an API key still get one-sentence todos (title only).
        logger.info("Using offline LLM client: %s", e)
        return OfflineLLMClient()


def build_push_sender(settings) -> PushSender:
    endpoint = getattr(settings, "push_endpoint", None)
    if endpoint:
        return HttpPushSender(endpoint, auth_token=getattr(settings, "push_auth_token", None))
    return ConsolePushSender()


def slot_policy_from_settings(settings) -> SlotPolicy:
    return SlotPolicy(
        day_start_hour=int(getattr(settings, "workday_start_hour", 10)),
        day_end_hour=int(getattr(settings, "workday_end_hour", 21)),
        horizon_days=int(getattr(settings, "slot_horizon_days", 3)),
        slot_limit=int(getattr(settings, "slot_limit", 3)),
    )


def create_initial_state(*, settings=None, llm: LLMClient | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    todo_store = TodoStore(settings.todos_db_path)
    notification_store = NotificationStore(settings.notifications_db_path)
    broadcast = InMemoryBroadcastChannel()

    service = TodoService(
        todo_store,
        StoreNotificationScheduler(notification_store),
        broadcast,
        llm=llm if llm is not None else _build_llm(settings),
        slot_policy=slot_policy_from_settings(settings),
        coordination_topic=settings.coordination_topic,
        priority_limit=settings.priority_limit,
    )

    user = todo_store.ensure_user(
        user_id=settings.default_user_id,
        name=settings.default_user_name,
        push_token=settings.default_push_token,
    )

    return AppState(
        settings=settings,
        todo_store=todo_store,
        notification_store=notification_store,
        broadcast=broadcast,
        service=service,
        user_id=user.id,
    )
