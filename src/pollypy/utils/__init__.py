"""Utility modules for pollypy."""

from .headers import (
    REPLAY_HEADER,
    VOLATILE_HEADERS,
    HeaderValue,
    add_replay_header,
    collect_headers,
    filter_response_headers,
    normalize_headers,
)

__all__ = [
    "filter_response_headers",
    "add_replay_header",
    "normalize_headers",
    "collect_headers",
    "HeaderValue",
    "REPLAY_HEADER",
    "VOLATILE_HEADERS",
]
