"""Logging setup shared by the CLI, the watcher loop and the GUI."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import IO, Final

from .config import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_MAX_BYTES,
)

LOG_FILE_ENV_VAR: Final[str] = "TAYLORED_HIGHLIGHTER_LOG_FILE"
LOG_LEVEL_ENV_VAR: Final[str] = "TAYLORED_HIGHLIGHTER_LOG_LEVEL"
LOG_MAX_BYTES_ENV_VAR: Final[str] = "TAYLORED_HIGHLIGHTER_LOG_MAX_BYTES"
LOG_BACKUP_COUNT_ENV_VAR: Final[str] = "TAYLORED_HIGHLIGHTER_LOG_BACKUP_COUNT"
LOG_TIMESTAMP_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
CONSOLE_HANDLER_NAME: Final[str] = "taylored_highlighter.console"

__all__ = [
    "CONSOLE_HANDLER_NAME",
    "LOG_BACKUP_COUNT_ENV_VAR",
    "LOG_FILE_ENV_VAR",
    "LOG_LEVEL_ENV_VAR",
    "LOG_MAX_BYTES_ENV_VAR",
    "LOG_TIMESTAMP_FORMAT",
    "configure_console_logging",
    "configure_logging",
]


def _resolve_log_level(level: str | int | None) -> int:
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV_VAR, "INFO")
    if isinstance(level, int):
        return level
    candidate = level.strip()
    if candidate.isdigit():
        return int(candidate)
    numeric = logging.getLevelName(candidate.upper()) if candidate else None
    return numeric if isinstance(numeric, int) else logging.INFO


def _non_negative(value: int | str | None) -> int | None:
    if value is None:
        return None
    try:
        numeric = int(str(value).strip())
    except ValueError:
        return None
    return numeric if numeric >= 0 else None


def _rotation_setting(value: int | str | None, env_var: str, default: int) -> int:
    for candidate in (value, os.getenv(env_var)):
        resolved = _non_negative(candidate)
        if resolved is not None:
            return resolved
    return default


def configure_logging(
    *,
    level: str | int | None = None,
    log_file: str | Path | None = None,
    max_bytes: int | str | None = None,
    backup_count: int | str | None = None,
) -> Path:
    """Install a rotating file handler on the root logger and return its path.

    Environment variables take precedence over ``log_file``; rotation values
    passed explicitly take precedence over the environment.
    """

    resolved_level = _resolve_log_level(level)
    file_path = Path(
        os.getenv(LOG_FILE_ENV_VAR) or log_file or DEFAULT_LOG_FILE
    ).expanduser()
    file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        file_path,
        encoding="utf-8",
        maxBytes=_rotation_setting(
            max_bytes, LOG_MAX_BYTES_ENV_VAR, DEFAULT_LOG_MAX_BYTES
        ),
        backupCount=_rotation_setting(
            backup_count, LOG_BACKUP_COUNT_ENV_VAR, DEFAULT_LOG_BACKUP_COUNT
        ),
    )
    file_handler.setLevel(resolved_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt=LOG_TIMESTAMP_FORMAT,
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    for handler in list(root_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.addHandler(file_handler)
    return file_path


def configure_console_logging(stream: IO[str] | None = None) -> logging.Handler:
    """Install (or replace) the stderr handler used by the command-line front-end."""

    root_logger = logging.getLogger()
    console_handler = logging.StreamHandler(stream=stream or sys.stderr)
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setLevel(root_logger.getEffectiveLevel())
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    for handler in list(root_logger.handlers):
        if handler.get_name() == CONSOLE_HANDLER_NAME:
            root_logger.removeHandler(handler)

    root_logger.addHandler(console_handler)
    return console_handler
