# src/todo_planner/llm/offline.py

from __future__ import annotations

import json
from collections.abc import Iterable

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Offline deterministic LLM client used when no external API is configured.

    For todo extraction prompts it answers with the raw sentence as the title, so the
    parser falls back to its defaults (next full hour, one hour long).
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        yield json.dumps({"title": user_text.strip()}, ensure_ascii=False)
