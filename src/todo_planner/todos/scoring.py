# src/todo_planner/todos/scoring.py

from __future__ import annotations

from datetime import datetime

from .todo_models import Todo, TodoStatus

URGENCY_HORIZON_HOURS = 72.0
URGENCY_MAX = 10.0
IN_PROGRESS_BONUS = 2.0


def priority_score(todo: Todo, now: datetime) -> float:
    """
    Non-negative priority of an open todo.

    Urgency ramps linearly from 0 (start URGENCY_HORIZON_HOURS or more away) to
    URGENCY_MAX (start now or already past). Todos without a start score 0 urgency.
    Work already in progress gets a small bonus so it is not abandoned.
    """
    score = 0.0
    if todo.start is not None:
        hours_left = (todo.start - now).total_seconds() / 3600.0
        if hours_left <= 0:
            score = URGENCY_MAX
        else:
            score = URGENCY_MAX * max(0.0, 1.0 - hours_left / URGENCY_HORIZON_HOURS)

    if todo.status == TodoStatus.IN_PROGRESS:
        score += IN_PROGRESS_BONUS

    return round(score, 6)
