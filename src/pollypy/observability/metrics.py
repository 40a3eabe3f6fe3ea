"""Prometheus metrics for the pollypy dispatch engine.

This module provides Prometheus metrics describing what a test run did with
its outbound requests. Metrics include:

- Request counters by terminal action (record, replay, intercept, passthrough)
- Simulated replay delay histogram
- Missing recording counter
- Expired recording counter, split by whether the entry was re-recorded

Examples:
    Recording a dispatched request::

        from pollypy.observability.metrics import record_action

        record_action("replay")

    Recording a simulated delay::

        from pollypy.observability.metrics import record_replay_delay

        record_replay_delay(delay_ms=250)
"""

from prometheus_client import Counter, Histogram

# Request counter by terminal action
# Labels: action (record, replay, intercept, passthrough)
requests_total = Counter(
    "polly_requests_total",
    "Total number of requests dispatched by pollypy",
    ["action"],
)

# Simulated replay latency (seconds)
replay_delay_seconds = Histogram(
    "polly_replay_delay_seconds",
    "Simulated latency applied before delivering a replayed response",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

missing_recordings_total = Counter(
    "polly_missing_recordings_total",
    "Requests in replay mode that had no recording and could not be recorded",
)

# Labels: renewed ("true" when the expired entry was re-recorded)
expired_recordings_total = Counter(
    "polly_expired_recordings_total",
    "Expired recordings encountered during replay",
    ["renewed"],
)


def record_action(action: str) -> None:
    """Record the terminal action chosen for a request.

    Args:
        action: The action value (record, replay, intercept, passthrough)

    Examples:
        >>> record_action("passthrough")
    """
    requests_total.labels(action=action).inc()


def record_replay_delay(delay_ms: float) -> None:
    """Record a simulated replay delay.

    Args:
        delay_ms: Delay in milliseconds
    """
    replay_delay_seconds.observe(delay_ms / 1000.0)


def record_missing() -> None:
    """Record a request that failed for lack of a recording."""
    missing_recordings_total.inc()


def record_expired(renewed: bool) -> None:
    """Record an expired recording.

    Args:
        renewed: True if the entry is being re-recorded, False if the stale
            entry is replayed anyway
    """
    expired_recordings_total.labels(renewed=str(renewed).lower()).inc()
