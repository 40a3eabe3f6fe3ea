"""In-memory persister with asyncio concurrency control.

This module provides an in-memory implementation of the Persister
interface. Entries are keyed by recording name, request id and order, so
repeated identical requests replay their recordings in the order they were
recorded.

The MemoryPersister is suitable for:
    - Unit tests of transport integrations
    - Recordings that only need to live for one process

Examples:
    Basic usage::

        from pollypy.persister.memory import MemoryPersister

        persister = MemoryPersister()
        await persister.save_recording_entry(entry)

        found = await persister.find_recording_entry(polly_request)
        assert found == entry
"""

import asyncio
from typing import TYPE_CHECKING

from pollypy.models import RecordingEntry
from pollypy.persister.base import Persister

if TYPE_CHECKING:
    from pollypy.request import PollyRequest

EntryKey = tuple[str, int]


class MemoryPersister(Persister):
    """In-memory persister with asyncio concurrency control.

    Attributes:
        _recordings: Recording name mapped to entries keyed by (id, order).
        _lock: Lock serializing writes.

    Thread Safety:
        Lookups read a dict and never await, so they see either the old or
        the new entry. Writes are serialized by ``_lock``.
    """

    def __init__(self) -> None:
        self._recordings: dict[str, dict[EntryKey, RecordingEntry]] = {}
        self._lock = asyncio.Lock()

    async def find_recording_entry(self, request: "PollyRequest") -> RecordingEntry | None:
        """Find the entry recorded for this request's identity and order.

        Args:
            request: A request that has completed setup.

        Returns:
            The matching entry, or None.
        """
        entries = self._recordings.get(request.recording_name)
        if entries is None:
            return None

        return entries.get((request.id, request.order))

    async def save_recording_entry(self, entry: RecordingEntry) -> None:
        """Store an entry, replacing any entry with the same key.

        Args:
            entry: The entry to store.
        """
        async with self._lock:
            entries = self._recordings.setdefault(entry.recording_name, {})
            entries[(entry.id, entry.order)] = entry

    async def persist(self) -> None:
        """Nothing to flush; entries live only in this process."""
        return None

    async def entries(self, recording_name: str) -> list[RecordingEntry]:
        """Return every entry of a recording, oldest first.

        Args:
            recording_name: The recording to list.

        Returns:
            The recording's entries sorted by creation time.
        """
        entries = self._recordings.get(recording_name, {})
        return sorted(entries.values(), key=lambda e: (e.created_at, e.order))

    async def delete_recording(self, recording_name: str) -> int:
        """Remove a recording.

        Args:
            recording_name: The recording to remove.

        Returns:
            The number of entries removed.
        """
        async with self._lock:
            removed = self._recordings.pop(recording_name, {})
        return len(removed)
