# src/todo_planner/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the notification dispatcher in a background thread (own asyncio loop),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import threading
from dataclasses import dataclass

from ..cli.bootstrap import build_push_sender, create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..notifications.notification_scheduler import run_notification_dispatcher

logger = logging.getLogger(__name__)


@dataclass
class DispatcherBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    task: asyncio.Future

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.task.cancel)
        except RuntimeError:
            logger.debug("Failed to signal dispatcher stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_dispatcher_in_background(state: AppState) -> DispatcherBackgroundRunner | None:
    """
    Run the notification dispatcher in a background thread.

    The console REPL is blocking (input()), the dispatcher is async and wants its
    own event loop.
    """
    settings = state.settings
    sender = build_push_sender(settings)

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        task = loop.create_task(
            run_notification_dispatcher(
                state.notification_store,
                sender,
                interval_seconds=settings.dispatcher_interval_seconds,
                retry_delay_seconds=settings.dispatcher_retry_delay_seconds,
                batch_limit=settings.dispatcher_batch_limit,
                max_attempts=settings.dispatcher_max_attempts,
                title=settings.app_name,
            )
        )
        holder["loop"] = loop
        holder["task"] = task
        ready.set()

        try:
            loop.run_until_complete(task)
        except asyncio.CancelledError:
            logger.debug("Dispatcher cancelled.")
        finally:
            loop.close()

    t = threading.Thread(target=runner, name="notification-dispatcher", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    task = holder.get("task")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(task, asyncio.Future):
        logger.error("Dispatcher thread did not initialize properly.")
        return None

    logger.info("Notification dispatcher started (interval=%.1fs).", settings.dispatcher_interval_seconds)
    return DispatcherBackgroundRunner(thread=t, loop=loop, task=task)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)
    dispatcher = start_dispatcher_in_background(state)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    # SIGTERM is not available everywhere.
    with contextlib.suppress(ValueError, AttributeError):
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            with contextlib.suppress(ValueError):
                signal.signal(signal.SIGINT, _handle_signal)
            logger.info("Console disabled. Running the notification dispatcher only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        if dispatcher is not None:
            dispatcher.stop()
            dispatcher.join(timeout=10.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
