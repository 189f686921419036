# src/todo_planner/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Any

from ..cli.commands import format_todo
from ..cli.commands import registry as command_registry
from ..core.errors import PlannerError
from ..core.state import AppState
from ..llm.client import friendly_llm_error_message

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _print_coordination(topic: str, message: Any) -> None:
    if isinstance(message, dict):
        _print_ts(
            f"[{topic}] {message.get('message', '')} "
            f"#{message.get('todo_id')} {message.get('todo_title', '')} "
            f"({message.get('start', '-')} -> {message.get('end', '-')})"
        )
    else:
        _print_ts(f"[{topic}] {message}")


def handle_line(state: AppState, line: str, emit=None) -> str:
    """
    One console turn: slash commands go to the registry, anything else becomes
    a todo via one-sentence extraction.
    """
    cmd_response = command_registry.handle(state, line, emit=emit)
    if cmd_response is not None:
        return cmd_response

    try:
        todo_id = state.service.create_todo_from_sentence(line, state.user_id)
    except PlannerError as e:
        return f"Could not create a todo from that: {e}"
    return "Added " + format_todo(state.service.get_todo(todo_id))


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (user_id=%s).", state.user_id)
    _print_ts("[CONSOLE] Type a todo in one sentence, or use /help for commands. Use /exit to quit.\n")

    unsubscribe = state.broadcast.subscribe(
        getattr(state.settings, "coordination_topic", "/sub/chatroom/coordination"),
        _print_coordination,
    )

    def emit(text: str) -> None:
        _print_ts(text)

    try:
        while True:
            try:
                user_input = input(">>> ").strip()
                _rewrite_prev_line(f"[{_ts_local()}] >>> {user_input}")
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                with state.lock:
                    reply = handle_line(state, user_input, emit=emit)
            except RuntimeError as e:
                msg = friendly_llm_error_message(e)
                logger.info("LLM runtime error: %s", msg)
                _print_ts(f"[LLM] {msg}")
                continue
            except Exception:
                logger.exception("Console handler crashed.")
                _print_ts("Internal error while handling the input.")
                continue

            _print_ts(reply)
    finally:
        unsubscribe()

    logger.info("Console connector finished.")
