"""Request identity for matching recordings.

Two requests share an identity when their canonical forms are equal. The
identity, together with the occurrence order assigned by the session, is the
key the in-memory persister uses to find a recording.
"""

import hashlib
import json
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit


def compute_request_id(
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes,
    included_headers: list[str] | None = None,
) -> str:
    """Compute a deterministic identity hash for a request.

    The identity is computed from canonical representations of:
    1. Method: uppercase
    2. URL: lowercase scheme and host, path kept as-is (trailing / stripped
       except root), query parameters sorted, fragment dropped
    3. Headers: only ``included_headers``, lowercase keys, sorted JSON
    4. Body SHA-256 digest
    5. Final: SHA-256 of the components joined by newlines

    Args:
        method: HTTP method
        url: Absolute request URL
        headers: Request headers
        body: Request body
        included_headers: Header names that take part in the identity.
            Defaults to none.

    Returns:
        Hexadecimal SHA-256 hash string (64 characters)

    Examples:
        >>> a = compute_request_id("get", "https://API.example.com/u?b=2&a=1", {}, b"")
        >>> b = compute_request_id("GET", "https://api.example.com/u?a=1&b=2", {}, b"")
        >>> a == b
        True
    """
    if included_headers is None:
        included_headers = []

    components = [
        method.upper(),
        canonicalize_url(url),
        _canonicalize_headers(headers, included_headers),
        hashlib.sha256(body).hexdigest(),
    ]

    return hashlib.sha256("\n".join(components).encode("utf-8")).hexdigest()


def canonicalize_url(url: str) -> str:
    """Canonicalize a URL for identity comparison.

    Args:
        url: The URL to canonicalize

    Returns:
        The canonical URL string
    """
    parts = urlsplit(url)

    path = parts.path or "/"
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/")

    return urlunsplit(
        (
            parts.scheme.lower(),
            parts.netloc.lower(),
            path,
            _canonicalize_query_string(parts.query),
            "",
        )
    )


def _canonicalize_query_string(query_string: str) -> str:
    if not query_string or not query_string.strip():
        return ""

    parsed = parse_qs(query_string, keep_blank_values=True)

    sorted_params: list[tuple[str, str]] = []
    for key in sorted(parsed.keys()):
        for value in sorted(parsed[key]):
            sorted_params.append((key, value))

    return urlencode(sorted_params, doseq=False)


def _canonicalize_headers(headers: dict[str, str], included_headers: list[str]) -> str:
    included_lower = {name.lower() for name in included_headers}

    canonical: dict[str, str] = {}
    for key, value in headers.items():
        key_lower = key.lower()
        if key_lower in included_lower:
            canonical[key_lower] = value.strip()

    return json.dumps(canonical, sort_keys=True, separators=(",", ":"))
