# src/todo_planner/text/sentence_parser.py

"""
One-sentence todo creation.

The user types something like "dentist tomorrow at 3pm for an hour" and the LLM
turns it into a strict JSON object that becomes a TodoDraft. The parser is
lenient about the reply (extra prose, missing fields) and strict about the result
(a title is always present and end is never before start).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any

from ..core.errors import SentenceParseError
from ..core.ports import LLMClient
from ..todos.todo_models import TodoDraft

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=1)

TODO_EXTRACTION_SYSTEM_PROMPT = """
You are a todo extraction module.

You do NOT chat with the user.

Read ONE sentence written by the user and return ONE JSON object describing the todo:

{
  "title": "short imperative title",
  "start": "YYYY-MM-DDTHH:MM" or null,
  "end": "YYYY-MM-DDTHH:MM" or null,
  "category": "work|study|personal|health|errand|..." or null,
  "location": "free text" or null,
  "together": "people involved" or null
}

Rules:
- Resolve relative dates ("tomorrow", "next friday") against current_time below.
- Use 24h local time, no timezone suffix.
- Unknown fields are null. Never invent a location or people.
- Output JSON only. No markdown, no comments.

current_time: {now}
""".strip()


def _extract_json_object(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    if not s or s.lower() in {"null", "none"}:
        return None
    return s


def _parse_dt(v: Any) -> datetime | None:
    s = _opt_str(v)
    if s is None:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        logger.info("Todo extraction: ignoring unparsable datetime %r", s)
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt.replace(second=0, microsecond=0)


def next_full_hour(now: datetime) -> datetime:
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


def draft_from_payload(payload: dict[str, Any], *, sentence: str, now: datetime) -> TodoDraft:
    title = _opt_str(payload.get("title")) or sentence.strip()
    if not title:
        raise SentenceParseError("todo title is empty")

    start = _parse_dt(payload.get("start")) or next_full_hour(now)
    end = _parse_dt(payload.get("end"))
    if end is None or end <= start:
        end = start + DEFAULT_DURATION

    return TodoDraft(
        title=title,
        start=start,
        end=end,
        category=_opt_str(payload.get("category")),
        location=_opt_str(payload.get("location")),
        together=_opt_str(payload.get("together")),
    )


def parse_todo_sentence(llm: LLMClient, sentence: str, *, now: datetime | None = None) -> TodoDraft:
    """Ask the LLM to structure `sentence` and build a TodoDraft from the reply."""
    text = (sentence or "").strip()
    if not text:
        raise SentenceParseError("sentence is empty")

    if now is None:
        now = datetime.now()

    system_prompt = TODO_EXTRACTION_SYSTEM_PROMPT.replace(
        "{now}", now.replace(second=0, microsecond=0).isoformat(timespec="minutes")
    )

    raw = "".join(llm.stream_chat([{"role": "user", "content": text}], system_prompt)).strip()
    if not raw:
        raise SentenceParseError("LLM returned an empty reply")

    try:
        payload = json.loads(_extract_json_object(raw))
    except json.JSONDecodeError as e:
        logger.info("Todo extraction JSON parse failed. Raw=%r", raw[:500])
        raise SentenceParseError("LLM reply is not valid JSON") from e

    if not isinstance(payload, dict):
        raise SentenceParseError("LLM reply is not a JSON object")

    draft = draft_from_payload(payload, sentence=text, now=now)
    logger.debug("Todo extraction: %r -> %r", text, draft)
    return draft
