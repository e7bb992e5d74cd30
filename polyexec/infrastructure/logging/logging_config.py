"""
Logging configuration for polyexec.

structlog on top of stdlib logging. Text output renders one line per event
with a coloured level; JSON output is meant for log aggregation.

Logs go to stderr: stdout belongs to the CLI's transcript output.
"""

import logging
import sys
from typing import Any, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor

LEVEL_COLORS = {
    "debug": "\033[36m",
    "info": "\033[32m",
    "warning": "\033[33m",
    "error": "\033[31m",
    "critical": "\033[35m",
}
RESET = "\033[0m"

# Keys rendered before the rest, in this order, when present.
_LEADING_KEYS = ("language", "session_id", "container_id", "image")


def add_color(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Wrap the level name in an ANSI colour code."""
    color = LEVEL_COLORS.get(method_name)
    level = event_dict.get("level")
    if color and level:
        event_dict["level"] = f"{color}{str(level).upper()}{RESET}"
    return event_dict


def text_renderer(logger: Any, method_name: str, event_dict: EventDict) -> str:
    """
    Render ``[time] [LEVEL] [logger] message key=value ...``.

    Example:
        [2026-01-14 10:30:45] [INFO] [polyexec.application] Container removed container_id=3f2a
    """
    timestamp = event_dict.pop("timestamp", "")
    level = str(event_dict.pop("level", "info"))
    if RESET not in level:
        level = level.upper()
    logger_name = event_dict.pop("logger", None)
    message = event_dict.pop("event", "")
    exception = event_dict.pop("exception", None)
    event_dict.pop("stack_info", None)

    parts = []
    if timestamp:
        parts.append(f"[{timestamp}]")
    parts.append(f"[{level}]")
    if logger_name and logger_name != "root":
        parts.append(f"[{logger_name}]")
    parts.append(str(message))

    ordered = [k for k in _LEADING_KEYS if k in event_dict]
    ordered += sorted(k for k in event_dict if k not in _LEADING_KEYS)
    for key in ordered:
        value = event_dict[key]
        if isinstance(value, (str, int, float, bool)) or value is None:
            parts.append(f"{key}={value}")
        else:
            parts.append(f"{key}={value!r}")

    line = " ".join(parts)
    if exception:
        line += "\n" + exception
    return line


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "text",
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure structlog for the process.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "text" (default) or "json"
        stream: Output stream, stderr by default
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(add_color)
        processors.append(text_renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None, **context: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a logger, optionally bound to initial context.

    Example:
        logger = get_logger(__name__)
        logger.info("Kernel started", language="python", session_id="python-1a2b")
    """
    if name:
        return structlog.get_logger(name, **context)
    return structlog.get_logger(**context)


def bind_context(**context: Any) -> None:
    """Bind context to every log line emitted from the current task."""
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
