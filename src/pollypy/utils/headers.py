"""Header utilities shared by the request model and transport integrations.

This module provides functions for:
- Normalizing request headers
- Collecting raw ASGI header pairs without losing repeated headers
- Stripping volatile headers before a response is recorded
- Marking replayed responses
"""

from collections.abc import Iterable

# Headers that are not stored with a recorded response
# These are hop-by-hop or differ on every live call
VOLATILE_HEADERS = {
    "date",
    "server",
    "connection",
    "transfer-encoding",
    "keep-alive",
    "trailer",
    "upgrade",
    "proxy-connection",
    "proxy-authenticate",
    "proxy-authorization",
}

REPLAY_HEADER = "x-pollypy-replay"

# A header sent more than once (set-cookie) keeps every value, in order
HeaderValue = str | list[str]


def normalize_headers(headers: dict[str, str]) -> dict[str, str]:
    """Lowercase header names and strip surrounding whitespace from values.

    Example:
        >>> normalize_headers({"Content-Type": " application/json "})
        {'content-type': 'application/json'}
    """
    return {key.lower(): value.strip() for key, value in headers.items()}


def filter_response_headers(
    headers: dict[str, HeaderValue],
    additional_volatile: list[str] | None = None,
) -> dict[str, HeaderValue]:
    """Remove volatile headers from a response about to be recorded.

    Args:
        headers: Original response headers
        additional_volatile: Additional header names to remove (case-insensitive)

    Returns:
        Filtered headers dictionary

    Example:
        >>> headers = {
        ...     "Content-Type": "application/json",
        ...     "Date": "Mon, 01 Oct 2025 12:00:00 GMT",
        ...     "Server": "nginx/1.18.0"
        ... }
        >>> filter_response_headers(headers)
        {'Content-Type': 'application/json'}
    """
    headers_to_remove = VOLATILE_HEADERS.copy()

    if additional_volatile:
        headers_to_remove.update(h.lower() for h in additional_volatile)

    return {key: value for key, value in headers.items() if key.lower() not in headers_to_remove}


def add_replay_header(headers: dict[str, HeaderValue]) -> dict[str, HeaderValue]:
    """Return a copy of ``headers`` marked as a replayed response.

    Example:
        >>> add_replay_header({"content-type": "text/plain"})
        {'content-type': 'text/plain', 'x-pollypy-replay': 'true'}
    """
    result = headers.copy()
    result[REPLAY_HEADER] = "true"
    return result


def collect_headers(raw: Iterable[tuple[bytes, bytes]]) -> dict[str, HeaderValue]:
    """Build a headers dict from raw ASGI header pairs.

    Names are lowercased. A header that appears more than once maps to the
    list of its values.

    Example:
        >>> collect_headers([(b"set-cookie", b"a=1"), (b"Set-Cookie", b"b=2")])
        {'set-cookie': ['a=1', 'b=2']}
    """
    headers: dict[str, HeaderValue] = {}
    for raw_name, raw_value in raw:
        name = raw_name.decode("latin-1").lower()
        value = raw_value.decode("latin-1")

        existing = headers.get(name)
        if existing is None:
            headers[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            headers[name] = [existing, value]
    return headers
