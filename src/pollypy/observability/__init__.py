"""Observability utilities for pollypy.

This package provides visibility into what a test run did with its
outbound requests:
- Prometheus metrics for dispatch actions, delays and expirations
- Structured logging with contextual information

Expired-recording diagnostics are emitted through the structured logger.
"""

from pollypy.observability.logging import configure_logging, get_logger
from pollypy.observability.metrics import (
    record_action,
    record_expired,
    record_missing,
    record_replay_delay,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_action",
    "record_expired",
    "record_missing",
    "record_replay_delay",
]
