"""Structured logging helpers for rpc-mock.

The matcher only needs an object with a warning(event, **fields) method.
By default that is a structlog logger; callers may inject their own.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol

import structlog

from rpc_mock.models import LogFormat

DEFAULT_LOGGER_NAME = "rpc_mock"


class WarningLogger(Protocol):
    """Logging capability required by RequestMatcher."""

    def warning(self, event: str, **fields: Any) -> Any: ...


def configure_logging(log_level: str = "INFO", log_format: LogFormat = "console") -> structlog.stdlib.BoundLogger:
    """Configure structlog on top of stdlib logging and return the package logger.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ...). Unknown names fall back to INFO.
        log_format: "console" (colored), "plain" (no colors) or "json".
    """
    normalized_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=normalized_level,
        stream=sys.stderr,
        format="%(message)s",
        force=True,
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        structlog.processors.format_exc_info,
    ]

    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    elif log_format == "plain":
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:  # json
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(normalized_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return get_logger()


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to name."""
    return structlog.get_logger(name)
