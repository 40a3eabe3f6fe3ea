"""Simulated latency for replayed responses.

A session's ``timing`` option is a callable receiving the recorded request
and response timestamps (epoch milliseconds) and returning how many
milliseconds to wait before a replayed response is delivered.

Examples:
    Replaying at recorded speed::

        from pollypy.config import PollyConfig
        from pollypy.core.timing import relative

        config = PollyConfig(timing=relative(1.0))

    A constant delay::

        config = PollyConfig(timing=fixed(100))
"""

import asyncio
from collections.abc import Callable

from pollypy.models import RecordingEntry

TimingFn = Callable[[float, float], float]


def fixed(delay_ms: float) -> TimingFn:
    """Build a timing function that always waits ``delay_ms``.

    Args:
        delay_ms: Delay in milliseconds, >= 0.

    Returns:
        A timing function.

    Raises:
        ValueError: If the delay is negative.
    """
    if delay_ms < 0:
        raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")

    def timing(request_ts: float, response_ts: float) -> float:
        return delay_ms

    return timing


def relative(ratio: float = 1.0) -> TimingFn:
    """Build a timing function proportional to the recorded latency.

    ``relative(1.0)`` replays at the speed the interaction was recorded,
    ``relative(0.5)`` twice as fast.

    Args:
        ratio: Multiplier applied to the recorded latency, >= 0.

    Returns:
        A timing function.

    Raises:
        ValueError: If the ratio is negative.
    """
    if ratio < 0:
        raise ValueError(f"ratio must be >= 0, got {ratio}")

    def timing(request_ts: float, response_ts: float) -> float:
        return (response_ts - request_ts) * ratio

    return timing


def compute_delay(timing: TimingFn | None, entry: RecordingEntry) -> float:
    """Compute the simulated delay for replaying ``entry``.

    Args:
        timing: The session's timing function, or None.
        entry: The recording about to be replayed.

    Returns:
        Delay in milliseconds. Zero when no timing function is configured;
        negative results are clamped to zero.

    Examples:
        >>> compute_delay(lambda req, res: res - req, entry)  # 0 -> 250
        250.0
    """
    if not callable(timing):
        return 0.0

    delay = timing(entry.request.timestamp, entry.response.timestamp)
    if not delay or delay < 0:
        return 0.0
    return float(delay)


async def simulate_delay(delay_ms: float) -> None:
    """Wait ``delay_ms`` milliseconds; return immediately for zero."""
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000.0)
