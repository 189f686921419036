# src/todo_planner/notifications/push_sender.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

import httpx

from .push_models import PushMessage

logger = logging.getLogger(__name__)


class ConsolePushSender:
    """Prints pushes instead of delivering them. Used for local runs."""

    def __init__(self, printer: Callable[[str], None] = print) -> None:
        self._printer = printer

    async def send(self, message: PushMessage) -> None:
        ts = datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")
        self._printer(f"[{ts}] [PUSH] {message.notification.title}: {message.notification.body}")


class HttpPushSender:
    """
    POSTs the FCM-shaped payload to a push gateway.

    Any non-2xx response raises httpx.HTTPStatusError, so the dispatcher
    reschedules the notification.
    """

    def __init__(
            self,
            endpoint: str,
            *,
            auth_token: str | None = None,
            timeout_seconds: float = 10.0,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoint or not endpoint.strip():
            raise ValueError("push endpoint is required")
        self._endpoint = endpoint.strip()
        self._headers = {"Content-Type": "application/json"}
        if auth_token:
            self._headers["Authorization"] = f"Bearer {auth_token}"
        self._timeout = httpx.Timeout(timeout_seconds, connect=min(5.0, timeout_seconds))
        self._transport = transport

    async def send(self, message: PushMessage) -> None:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(self._endpoint, json=message.to_payload(), headers=self._headers)
            resp.raise_for_status()
        logger.debug("Push delivered endpoint=%s status=%s", self._endpoint, resp.status_code)
