"""Persisters for pollypy recordings.

This package provides the storage side of record/replay. All persisters
implement the Persister protocol defined in base.py.

Available Persisters:
    - MemoryPersister: In-memory storage for the lifetime of the process
"""

from pollypy.persister.base import Persister
from pollypy.persister.memory import MemoryPersister

__all__ = [
    "Persister",
    "MemoryPersister",
]
