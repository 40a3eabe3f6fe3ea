"""
Record/replay engine for HTTP interactions in tests.

This package decides, once per intercepted request, whether the request
passes through to the network, is answered by an intercept handler, is
recorded live, or is replayed from a stored recording.
"""

from pollypy.config import PollyConfig
from pollypy.core.adapter import Adapter, DispatchResult
from pollypy.exceptions import (
    HookNotImplementedError,
    MissingRecordingError,
    PollyError,
    UnhandledRequestError,
)
from pollypy.models import Action, Mode, RecordingEntry
from pollypy.request import PollyRequest, RawRequest
from pollypy.session import Polly

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Action",
    "Adapter",
    "DispatchResult",
    "HookNotImplementedError",
    "MissingRecordingError",
    "Mode",
    "Polly",
    "PollyConfig",
    "PollyError",
    "PollyRequest",
    "RawRequest",
    "RecordingEntry",
    "UnhandledRequestError",
]
