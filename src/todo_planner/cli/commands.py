# src/todo_planner/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import cast

from ..core.errors import PlannerError
from ..core.state import AppState
from ..todos.todo_models import Todo, TodoDraft, TodoStatus
from ..todos.todo_service import format_when

CommandEmitter = Callable[[str], None]
CommandHandler3 = Callable[[AppState, list[str], int], str]
CommandHandler4 = Callable[[AppState, list[str], int, CommandEmitter | None], str]
CommandHandler = CommandHandler3 | CommandHandler4

logger = logging.getLogger(__name__)

DT_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M")


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: int | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Planner errors and bad arguments become the reply text.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        uid = state.user_id if user_id is None else int(user_id)
        nparams = len(inspect.signature(handler).parameters)

        try:
            if nparams >= 4:
                h4 = cast(CommandHandler4, handler)
                return h4(state, args, uid, emit)
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, uid)
        except (PlannerError, ValueError) as e:
            logger.debug("Command /%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----

def parse_when(raw: str) -> datetime:
    s = raw.strip()
    for fmt in DT_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    raise ValueError(f"bad date/time {s!r}, expected YYYY-MM-DD HH:MM")


def _int_arg(args: list[str], idx: int, what: str) -> int:
    try:
        return int(args[idx])
    except (IndexError, ValueError):
        raise ValueError(f"{what} must be an integer") from None


def parse_draft(args: list[str]) -> TodoDraft:
    """title | start | end [| category [| location [| together]]]"""
    fields = [p.strip() for p in " ".join(args).split("|")]
    if len(fields) < 3 or not fields[0]:
        raise ValueError("usage: title | YYYY-MM-DD HH:MM | YYYY-MM-DD HH:MM [| category | location | together]")

    start = parse_when(fields[1])
    end = parse_when(fields[2])
    if end <= start:
        raise ValueError("end must be after start")

    extra = fields[3:] + [""] * 3
    return TodoDraft(
        title=fields[0],
        start=start,
        end=end,
        category=extra[0] or None,
        location=extra[1] or None,
        together=extra[2] or None,
    )


def format_todo(todo: Todo) -> str:
    parts = [f"#{todo.id} [{todo.status.value}] {todo.title}", f"{format_when(todo.start)} -> {format_when(todo.end)}"]
    if todo.category:
        parts.append(f"cat={todo.category}")
    if todo.input_time:
        parts.append(f"needs={todo.input_time}min")
    return "  ".join(parts)


def _format_list(title: str, todos: list[Todo]) -> str:
    if not todos:
        return f"{title}: nothing."
    lines = [f"{title}:"]
    for i, t in enumerate(todos, start=1):
        lines.append(f"{i}. {format_todo(t)}")
    return "\n".join(lines)


# ---- handlers ----

def cmd_help(state: AppState, args: list[str], user_id: int) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], user_id: int) -> str:
    s = state.settings
    return (
        "Status:\n"
        f"  User: {user_id}\n"
        f"  Todos stored: {state.todo_store.count_todos()}\n"
        f"  Notifications queued: {state.notification_store.count()}\n"
        f"  Working hours: {getattr(s, 'workday_start_hour', 10)}:00-{getattr(s, 'workday_end_hour', 21)}:00, "
        f"horizon {getattr(s, 'slot_horizon_days', 3)} day(s)"
    )


def cmd_add(state: AppState, args: list[str], user_id: int) -> str:
    """/add title | start | end [| category | location | together]"""
    todo_id = state.service.create_todo(parse_draft(args), user_id)
    return f"Added todo #{todo_id} (reminder scheduled at its start)."


def cmd_coordinate(state: AppState, args: list[str], user_id: int) -> str:
    todo_id = state.service.coordinate_todo(parse_draft(args), user_id)
    return f"Added todo #{todo_id} and sent it for coordination."


def cmd_list(state: AppState, args: list[str], user_id: int) -> str:
    """
    /list                    -> all todos
    /list todo|in_progress|done
    /list date YYYY-MM-DD
    /list cat <category>
    """
    if not args:
        return _format_list("Todos", state.service.get_todos(user_id))

    sub = args[0].lower()
    if sub == "date":
        if len(args) < 2:
            raise ValueError("usage: /list date YYYY-MM-DD")
        day = date.fromisoformat(args[1])
        return _format_list(f"Todos on {day.isoformat()}", state.service.get_todos_by_date(day, user_id))

    if sub in ("cat", "category"):
        if len(args) < 2:
            raise ValueError("usage: /list cat <category>")
        category = " ".join(args[1:])
        return _format_list(f"Todos in {category}", state.service.get_todos_by_category(category, user_id))

    status = TodoStatus.parse(" ".join(args))
    return _format_list(f"Todos ({status.value})", state.service.get_todos_by_status(status, user_id))


def cmd_show(state: AppState, args: list[str], user_id: int) -> str:
    todo = state.service.get_todo(_int_arg(args, 0, "todo id"))
    lines = [format_todo(todo)]
    if todo.location:
        lines.append(f"  location: {todo.location}")
    if todo.together:
        lines.append(f"  with: {todo.together}")
    return "\n".join(lines)


def cmd_start(state: AppState, args: list[str], user_id: int) -> str:
    todo_id = state.service.update_status(_int_arg(args, 0, "todo id"), TodoStatus.IN_PROGRESS)
    return f"Todo #{todo_id} is in progress."


def cmd_done(state: AppState, args: list[str], user_id: int) -> str:
    todo_id = state.service.update_status(_int_arg(args, 0, "todo id"), TodoStatus.DONE)
    return f"Todo #{todo_id} is done."


def cmd_delete(state: AppState, args: list[str], user_id: int) -> str:
    todo_id = _int_arg(args, 0, "todo id")
    state.service.delete_todo(todo_id, user_id)
    return f"Todo #{todo_id} deleted."


def cmd_priorities(state: AppState, args: list[str], user_id: int) -> str:
    return _format_list("Recommended order", state.service.get_priorities(user_id))


def cmd_input(state: AppState, args: list[str], user_id: int) -> str:
    todo_id = _int_arg(args, 0, "todo id")
    minutes = _int_arg(args, 1, "minutes")
    state.service.set_input_time(todo_id, minutes, user_id)
    return f"Todo #{todo_id} needs {minutes} minutes."


def cmd_slots(state: AppState, args: list[str], user_id: int) -> str:
    todo_id = _int_arg(args, 0, "todo id")
    found = state.service.find_available_time_slots(todo_id)
    if not found.slots:
        return f"No free slot found for todo #{todo_id} in the search window."
    lines = [f"Free slots for todo #{todo_id}:"]
    for i, slot in enumerate(found.slots, start=1):
        lines.append(f"{i}. {format_when(slot)}")
    return "\n".join(lines)


def cmd_dates(state: AppState, args: list[str], user_id: int) -> str:
    dates = state.service.get_todo_dates(_int_arg(args, 0, "todo id"))
    if not dates:
        return "No dates."
    return "\n".join(f"#{d.todo_id} {d.title}: {format_when(d.start)} -> {format_when(d.end)}" for d in dates)


def cmd_say(state: AppState, args: list[str], user_id: int, emit: CommandEmitter | None = None) -> str:
    """/say <sentence> -> create a todo from free text."""
    sentence = " ".join(args).strip()
    if not sentence:
        raise ValueError("usage: /say <sentence>")
    if emit:
        emit("[LLM] Reading your sentence...")
    todo_id = state.service.create_todo_from_sentence(sentence, user_id)
    return format_todo(state.service.get_todo(todo_id))


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show store counts and working hours.")
registry.register("add", cmd_add, help_text="Add a todo: /add title | start | end [| category | location | together].")
registry.register("coordinate", cmd_coordinate, help_text="Add a todo and broadcast it for coordination (same args as /add).")
registry.register("list", cmd_list, help_text="List todos: /list [todo|in_progress|done] | /list date D | /list cat C.", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show one todo: /show <id>.")
registry.register("start", cmd_start, help_text="Mark a todo in progress: /start <id>.")
registry.register("done", cmd_done, help_text="Mark a todo done: /done <id>.")
registry.register("delete", cmd_delete, help_text="Delete a todo: /delete <id>.", aliases=["rm"])
registry.register("priorities", cmd_priorities, help_text="Open todos in recommended order.", aliases=["prio"])
registry.register("input", cmd_input, help_text="Set how long a todo takes: /input <id> <minutes>.")
registry.register("slots", cmd_slots, help_text="Find free slots for a todo: /slots <id>.")
registry.register("dates", cmd_dates, help_text="Calendar of the todo owner's todos: /dates <id>.")
registry.register("say", cmd_say, help_text="Create a todo from one sentence: /say <text>.")
