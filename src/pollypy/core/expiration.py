"""Recording expiration policy.

A recording older than the session's ``expires_in`` is expired. Expiration
never drops a recording: it only decides whether the stale entry is swapped
for a fresh live recording. When re-recording is disabled, or the network is
unreachable, the stale entry is replayed and a warning is logged.

The connectivity signal is injected as a ConnectivityProbe so the policy can
be exercised without touching the network.

Examples:
    Checking an entry::

        from pollypy.core.expiration import StaticConnectivity, should_re_record

        if should_re_record(entry, config, StaticConnectivity(online=True)):
            ...  # record a fresh interaction
"""

import socket
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

from pollypy.config import PollyConfig
from pollypy.models import RecordingEntry
from pollypy.observability.logging import get_logger
from pollypy.observability.metrics import record_expired

logger = get_logger(__name__)


@runtime_checkable
class ConnectivityProbe(Protocol):
    """Reports whether the process can currently reach the network."""

    def is_online(self) -> bool: ...


class AlwaysOnline:
    """Probe that always reports the network as reachable."""

    def is_online(self) -> bool:
        return True


class StaticConnectivity:
    """Probe with a fixed answer, switchable at runtime.

    Attributes:
        online: The value reported by ``is_online``.
    """

    def __init__(self, online: bool = True) -> None:
        self.online = online

    def is_online(self) -> bool:
        return self.online


class SocketConnectivityProbe:
    """Probe that opens a TCP connection to a well-known host.

    Attributes:
        host: Host to connect to.
        port: Port to connect to.
        timeout: Connection timeout in seconds.
    """

    def __init__(self, host: str = "1.1.1.1", port: int = 53, timeout: float = 1.0) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout

    def is_online(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except OSError:
            return False


def is_expired(
    created_at: datetime,
    expires_in: timedelta | None,
    now: datetime | None = None,
) -> bool:
    """Return True if a recording created at ``created_at`` has expired.

    Args:
        created_at: When the recording was made (naive values are UTC).
        expires_in: Maximum age, or None for recordings that never expire.
        now: Current time (defaults to ``datetime.now(UTC)``).

    Returns:
        True if the recording is strictly older than ``expires_in``.

    Examples:
        >>> created = datetime(2024, 1, 1, tzinfo=UTC)
        >>> is_expired(created, timedelta(seconds=1), created + timedelta(seconds=2))
        True
        >>> is_expired(created, None, created + timedelta(days=365))
        False
    """
    if expires_in is None:
        return False

    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)

    current = now if now is not None else datetime.now(UTC)
    return current - created_at > expires_in


def should_re_record(
    entry: RecordingEntry,
    config: PollyConfig,
    connectivity: ConnectivityProbe,
    now: datetime | None = None,
) -> bool:
    """Decide whether an expired recording may be replaced by a live one.

    Flow:
        1. Not expired (or no ``expires_in``): False
        2. Expired, ``record_if_expired`` disabled: warn, False
        3. Expired, offline: warn, False
        4. Expired, allowed and online: True

    Args:
        entry: The recording found for the request.
        config: Session configuration.
        connectivity: Connectivity signal.
        now: Current time (defaults to ``datetime.now(UTC)``).

    Returns:
        True if the request should be recorded instead of replayed.
    """
    if not is_expired(entry.created_at, config.expires_in, now):
        return False

    if not config.record_if_expired:
        logger.warning(
            "recording.expired",
            reason="Recording has expired but `record_if_expired` is disabled.",
            method=entry.request.method,
            url=entry.request.url,
            recording_name=entry.recording_name,
            created_at=entry.created_at.isoformat(),
        )
        record_expired(renewed=False)
        return False

    if not connectivity.is_online():
        logger.warning(
            "recording.expired",
            reason="Recording has expired but the network is offline.",
            method=entry.request.method,
            url=entry.request.url,
            recording_name=entry.recording_name,
            created_at=entry.created_at.isoformat(),
        )
        record_expired(renewed=False)
        return False

    record_expired(renewed=True)
    return True
