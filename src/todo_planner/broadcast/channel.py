# src/todo_planner/broadcast/channel.py

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Any], None]


class InMemoryBroadcastChannel:
    """
    In-process topic fan-out.

    publish() delivers synchronously to every subscriber of the topic. A failing
    subscriber is logged and skipped; publishers never see the error.
    Dataclass messages are delivered as plain dicts.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic: str, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                subs = self._subscribers.get(topic, [])
                if callback in subs:
                    subs.remove(callback)

        return unsubscribe

    def publish(self, topic: str, message: Any) -> None:
        if dataclasses.is_dataclass(message) and not isinstance(message, type):
            payload = dataclasses.asdict(message)
        else:
            payload = message

        with self._lock:
            subs = list(self._subscribers.get(topic, []))

        logger.debug("Broadcast topic=%s subscribers=%d", topic, len(subs))
        for callback in subs:
            try:
                callback(topic, payload)
            except Exception:
                logger.exception("Broadcast subscriber failed topic=%s", topic)
