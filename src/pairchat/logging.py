"""Structured logging setup for pairchat.

All modules log through structlog. Call setup_logging() once at process
start; get_logger() may be used at import time before that.
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(json_output: bool = True, level: str = "INFO") -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        json_output: Render JSON lines when True, colored console output otherwise.
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # uvicorn and httpx log through the stdlib
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a logger bound to a component name.

    Args:
        name: Component name added to every event as ``component``.

    Returns:
        A lazy structlog logger; configuration is resolved on first use.
    """
    if name:
        return structlog.get_logger(component=name)
    return structlog.get_logger()
