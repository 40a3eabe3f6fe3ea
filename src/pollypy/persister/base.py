"""Persister protocol for pollypy recordings.

This module defines the interface the dispatch engine uses to look up and
store recorded interactions. How a request is matched to a recording is
entirely up to the persister; the engine only asks "is there an entry for
this request?".

Examples:
    Implementing a custom persister::

        from pollypy.persister.base import Persister
        from pollypy.models import RecordingEntry

        class RedisPersister:
            async def find_recording_entry(self, request) -> RecordingEntry | None:
                data = await self.redis.get(f"{request.recording_name}:{request.id}")
                if data is None:
                    return None
                return RecordingEntry.model_validate_json(data)

            async def save_recording_entry(self, entry: RecordingEntry) -> None:
                await self.redis.set(f"{entry.recording_name}:{entry.id}", entry.model_dump_json())

            async def persist(self) -> None:
                pass

Concurrency Requirements:
    Several requests may be in flight at once, interleaved at their await
    points. Persister implementations MUST guarantee:

    1. **Safe concurrent lookups**: find_recording_entry() may be called by
       many in-flight requests at the same time.

    2. **Atomic saves**: save_recording_entry() must never expose a
       partially written entry to a concurrent lookup.

    The dispatch engine takes no locks of its own and never retries a
    failed persister call.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pollypy.models import RecordingEntry

if TYPE_CHECKING:
    from pollypy.request import PollyRequest


@runtime_checkable
class Persister(Protocol):
    """Protocol defining the interface for recording storage backends.

    All methods are async and must be safe to call concurrently from
    multiple asyncio tasks.

    Error Handling:
        Backend failures propagate to the caller unchanged; the dispatch
        engine does not catch them, so the request (and the test) fails.
    """

    async def find_recording_entry(self, request: "PollyRequest") -> RecordingEntry | None:
        """Find the recording that matches a request.

        Args:
            request: The set-up request to match.

        Returns:
            The matching recording entry, or None if there is none.

        Examples:
            >>> entry = await persister.find_recording_entry(polly_request)
            >>> if entry:
            ...     print(entry.response.status)
        """
        ...

    async def save_recording_entry(self, entry: RecordingEntry) -> None:
        """Store a newly recorded interaction.

        An existing entry with the same recording name, id and order is
        replaced.

        Args:
            entry: The entry to store.
        """
        ...

    async def persist(self) -> None:
        """Flush pending entries to durable storage, if the backend has any."""
        ...
