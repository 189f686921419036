# src/todo_planner/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Working hours and slot search limits are configuration points; the defaults
  (10:00-21:00, 3-day horizon, 3 slots) must stay as they are for compatibility.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "PLANNER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Console user (single-user CLI) ----
    console_enabled: bool
    default_user_id: int
    default_user_name: str
    default_push_token: Optional[str]

    # ---- LLM / OpenRouter (one-sentence todos) ----
    openrouter_api_key: Optional[str]
    openrouter_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]

    # ---- Push delivery ----
    push_endpoint: Optional[str]
    push_auth_token: Optional[str]
    dispatcher_interval_seconds: float
    dispatcher_retry_delay_seconds: float
    dispatcher_batch_limit: int
    dispatcher_max_attempts: int

    # ---- Realtime ----
    coordination_topic: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    todos_db_path: Path
    notifications_db_path: Path

    # ---- Planner tuning ----
    priority_limit: int
    workday_start_hour: int
    workday_end_hour: int
    slot_horizon_days: int
    slot_limit: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default="todo-planner") or "todo-planner"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        default_user_id = _env_int(_k("USER_ID"), 1)
        default_user_name = _env(_k("USER_NAME"), "me")
        default_push_token = _first_env(_k("PUSH_TOKEN"), default="console")

        openrouter_api_key = _first_env(_k("OPENROUTER_API_KEY"), "OPENROUTER_API_KEY", default=None)
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")

        http_referer = _env(_k("HTTP_REFERER"), "https://example.com")
        title = _env(_k("APP_TITLE"), app_name)
        extra_headers = {
            "HTTP-Referer": http_referer,
            "X-Title": title,
        }

        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "qwen/qwen-2.5-72b-instruct:free",
                "deepseek/deepseek-chat-v3-0324:free",
            ],
        )

        push_endpoint = _first_env(_k("PUSH_ENDPOINT"), default=None)
        push_auth_token = _first_env(_k("PUSH_AUTH_TOKEN"), default=None)
        dispatcher_interval_seconds = _env_float(_k("DISPATCHER_INTERVAL_SECONDS"), 15.0)
        dispatcher_retry_delay_seconds = _env_float(_k("DISPATCHER_RETRY_DELAY_SECONDS"), 60.0)
        dispatcher_batch_limit = _env_int(_k("DISPATCHER_BATCH_LIMIT"), 32)
        dispatcher_max_attempts = _env_int(_k("DISPATCHER_MAX_ATTEMPTS"), 5)

        coordination_topic = _env(_k("COORDINATION_TOPIC"), "/sub/chatroom/coordination")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo-planner"))
        todos_db_path = _env_path(_k("TODOS_DB_PATH"), data_dir / "todos.sqlite3")
        notifications_db_path = _env_path(_k("NOTIFICATIONS_DB_PATH"), data_dir / "notifications.sqlite3")

        priority_limit = _env_int(_k("PRIORITY_LIMIT"), 64)
        workday_start_hour = _env_int(_k("WORKDAY_START_HOUR"), 10)
        workday_end_hour = _env_int(_k("WORKDAY_END_HOUR"), 21)
        slot_horizon_days = _env_int(_k("SLOT_HORIZON_DAYS"), 3)
        slot_limit = _env_int(_k("SLOT_LIMIT"), 3)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            default_user_id=default_user_id,
            default_user_name=default_user_name,
            default_push_token=default_push_token,
            openrouter_api_key=openrouter_api_key,
            openrouter_base_url=openrouter_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            push_endpoint=push_endpoint,
            push_auth_token=push_auth_token,
            dispatcher_interval_seconds=dispatcher_interval_seconds,
            dispatcher_retry_delay_seconds=dispatcher_retry_delay_seconds,
            dispatcher_batch_limit=dispatcher_batch_limit,
            dispatcher_max_attempts=dispatcher_max_attempts,
            coordination_topic=coordination_topic,
            data_dir=data_dir,
            todos_db_path=todos_db_path,
            notifications_db_path=notifications_db_path,
            priority_limit=priority_limit,
            workday_start_hour=workday_start_hour,
            workday_end_hour=workday_end_hour,
            slot_horizon_days=slot_horizon_days,
            slot_limit=slot_limit,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load .env (without overriding real env vars) and build Settings once."""
    load_dotenv(override=False)
    return Settings.from_env()
