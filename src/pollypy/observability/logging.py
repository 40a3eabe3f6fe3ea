"""Structured logging configuration for pollypy.

This module provides structured logging using structlog to emit
JSON-formatted logs with contextual information. This makes logs
easier to parse and analyze in log aggregation systems.

The logger includes automatic context binding for:
- Request methods and URLs
- Recording names
- Dispatch actions
- Expiration decisions
- Replay delays

Examples:
    Configure logging::

        from pollypy.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    Use the logger::

        from pollypy.observability.logging import get_logger

        logger = get_logger(__name__)
        logger.info(
            "request.dispatched",
            method="GET",
            url="https://api.example.com/users",
            action="replay",
            delay_ms=250,
        )

    Output (JSON)::

        {
            "event": "request.dispatched",
            "method": "GET",
            "url": "https://api.example.com/users",
            "action": "replay",
            "delay_ms": 250,
            "timestamp": "2024-01-01T00:00:00.000000Z",
            "level": "info"
        }
"""

import logging
import sys
from typing import Any, TextIO

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for a test run.

    This should be called once, typically from a ``conftest.py``, before
    any session is created. Diagnostics go to stderr by default so they do
    not mix with the output of the code under test.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, emit JSON logs; if False, use console format
        stream: Where to write logs (default: sys.stderr)

    Examples:
        >>> configure_logging(level="DEBUG", json_output=True)
        >>> configure_logging(level="WARNING")
    """
    log_level = getattr(logging, level.upper())
    output = stream if stream is not None else sys.stderr

    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=log_level,
    )

    processors: list[object] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        A structlog logger instance
    """
    return structlog.get_logger(name)


# Pre-configured package logger
logger = get_logger("pollypy")
