# src/todo_planner/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

LOG_FILE_NAME = "todo-planner.log"

# Minimum console level per logger-name prefix; first match wins.
CONSOLE_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("todo_planner.notifications.", logging.WARNING),
    ("todo_planner.", logging.NOTSET),
    ("py.warnings", logging.ERROR),
)

NOISY_LIBRARIES = ("httpx", "httpcore", "openai")


class _ConsoleNoiseFilter(logging.Filter):
    """
    The REPL prints replies on the same terminal, so the console only gets
    planner logs. The reminder dispatcher polls every few seconds in its own
    thread and only speaks up on WARNING. Everything else needs ERROR.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, threshold in CONSOLE_THRESHOLDS:
            if record.name.startswith(prefix):
                return record.levelno >= threshold
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/todo-planner",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    quiet: Iterable[str] = NOISY_LIBRARIES,
) -> Path:
    """
    Route all logs to stderr (filtered) and to LOG_FILE_NAME in log_dir (unfiltered).

    Replaces any handlers already on the root logger, so calling it twice does not
    duplicate output. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # HTTP request lines from the LLM and push clients are not worth keeping.
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return log_file
