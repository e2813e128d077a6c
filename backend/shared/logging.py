"""Structured logging with structlog, routed through the stdlib root logger.

Log lines go to stderr so command output on stdout stays machine-readable.
When a log directory is given, every line is also appended as JSON to
``scorekeeper.log`` inside it.

Environment variables:
- LOG_FORMAT: "json" renders stderr as JSON lines; "console" or unset
  renders human-readable lines.
- LOG_LEVEL: overrides the level passed to setup_logging().
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator, MutableMapping
    from typing import Any

LOG_FILE_NAME = "scorekeeper.log"

# handlers installed here carry this name prefix so repeated setup only replaces its own
_HANDLER_PREFIX = "scorekeeper."

_LOG_FORMATS = ("json", "console", "")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Log statuses, game types and error codes by value."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def configure_structlog() -> None:
    """
    Hand structlog events to stdlib logging as event dicts.

    Rendering happens in the handlers installed by setup_logging(); until
    then records keep the event dict as ``record.msg``.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _serialize_enums,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def _json_stderr() -> bool:
    value = os.environ.get("LOG_FORMAT", "").lower()
    if value not in _LOG_FORMATS:
        msg = f"Invalid LOG_FORMAT={value!r}. Must be 'json', 'console', or unset."
        raise ValueError(msg)
    return value == "json"


def _level_override(default: int) -> int:
    value = os.environ.get("LOG_LEVEL", "").upper()
    if not value:
        return default
    if value not in _LOG_LEVELS:
        msg = f"Invalid LOG_LEVEL={value!r}. Must be one of {', '.join(_LOG_LEVELS)}."
        raise ValueError(msg)
    return getattr(logging, value)


def _install(handler: logging.Handler, name: str, *, json_lines: bool, colors: bool = False) -> None:
    renderer = structlog.processors.JSONRenderer() if json_lines else structlog.dev.ConsoleRenderer(colors=colors)
    handler.set_name(_HANDLER_PREFIX + name)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        ),
    )
    logging.getLogger().addHandler(handler)


def remove_handlers() -> None:
    """Detach and close the handlers installed by setup_logging()."""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if (handler.get_name() or "").startswith(_HANDLER_PREFIX):
            root.removeHandler(handler)
            handler.close()


def setup_logging(log_dir: Path | str | None = None, level: int = logging.INFO) -> Path | None:
    """Log to stderr and, with ``log_dir``, to a JSON log file. Returns the file path, if any."""
    json_stderr = _json_stderr()
    level = _level_override(level)

    configure_structlog()
    remove_handlers()
    logging.getLogger().setLevel(level)
    _install(logging.StreamHandler(sys.stderr), "stderr", json_lines=json_stderr, colors=sys.stderr.isatty())

    if log_dir is None:
        return None
    log_path = Path(log_dir) / LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _install(logging.FileHandler(log_path, encoding="utf-8"), "file", json_lines=True)
    return log_path


@contextmanager
def game_log_context(game_id: str | None, command: str) -> Iterator[None]:
    """Bind the game id and command name to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(game_id=game_id, command=command):
        yield
