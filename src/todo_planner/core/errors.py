# src/todo_planner/core/errors.py

from __future__ import annotations

"""
Exceptions raised by the planner core.

Everything derives from PlannerError so connectors can catch one type and turn it
into a user-facing message. Where a builtin fits, we also inherit from it
(LookupError, PermissionError, ValueError) so generic handlers keep working.
"""


class PlannerError(Exception):
    """Base class for all todo-planner errors."""


class NotFoundError(PlannerError, LookupError):
    """A user or todo id does not resolve to a stored record."""


class NotTodoOwnerError(PlannerError, PermissionError):
    """The acting user does not own the todo being modified."""


class InvalidGraphError(PlannerError, ValueError):
    """A priority graph carries a non-positive or non-finite edge weight."""


class NotificationSchedulingError(PlannerError):
    """A push notification could not be queued."""


class SentenceParseError(PlannerError, ValueError):
    """The LLM reply for a one-sentence todo could not be turned into a draft."""
