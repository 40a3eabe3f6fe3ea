"""Conversion between live responses and recording entries.

Transport integrations use these helpers on both sides of record/replay:

1. ``build_recording_entry`` turns a live response into a RecordingEntry
   (body base64-encoded, volatile headers removed)
2. ``replay_response`` turns a RecordingEntry back into a response marked
   with ``x-pollypy-replay: true``

Examples:
    Recording and replaying::

        from pollypy.core.replay import ReplayedResponse, build_recording_entry, replay_response

        live = ReplayedResponse(status=200, headers={"content-type": "text/plain"}, body=b"hi")
        entry = build_recording_entry(polly_request, live, finished_ms=time.time() * 1000)
        await persister.save_recording_entry(entry)

        response = replay_response(entry)
        # response.status == 200
        # response.headers["x-pollypy-replay"] == "true"
"""

import base64
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pollypy.models import RecordedRequest, RecordedResponse, RecordingEntry
from pollypy.utils.headers import HeaderValue, add_replay_header, filter_response_headers

if TYPE_CHECKING:
    from pollypy.request import PollyRequest


class ReplayedResponse:
    """A transport-neutral HTTP response.

    Attributes:
        status: HTTP status code (e.g., 200, 404, 500)
        headers: Response headers; a repeated header maps to a list of values
        body: Response body as bytes
    """

    def __init__(self, status: int, headers: dict[str, HeaderValue], body: bytes) -> None:
        """Initialize a response.

        Args:
            status: HTTP status code
            headers: Response headers
            body: Response body as bytes
        """
        self.status = status
        self.headers = headers
        self.body = body


def build_recording_entry(
    request: "PollyRequest",
    response: ReplayedResponse,
    finished_ms: float,
) -> RecordingEntry:
    """Build the entry recording ``request`` and its live ``response``.

    Args:
        request: A request that has completed setup
        response: The live response
        finished_ms: When the response was received, in epoch milliseconds

    Returns:
        A RecordingEntry keyed by the request's id and order

    Raises:
        ValueError: If the request has not been set up
    """
    if request.id is None or request.timestamp is None:
        raise ValueError(f"Request {request.method} {request.url} has not been set up")

    return RecordingEntry(
        id=request.id,
        order=request.order,
        recording_name=request.recording_name,
        created_at=datetime.now(UTC),
        request=RecordedRequest(
            method=request.method,
            url=request.url,
            headers=request.headers,
            body_b64=base64.b64encode(request.body).decode("ascii"),
            timestamp=request.timestamp,
        ),
        response=RecordedResponse(
            status=response.status,
            headers=filter_response_headers(response.headers),
            body_b64=base64.b64encode(response.body).decode("ascii"),
            timestamp=max(finished_ms, request.timestamp),
        ),
    )


def replay_response(entry: RecordingEntry) -> ReplayedResponse:
    """Reconstruct the recorded HTTP response.

    Args:
        entry: The recording to replay

    Returns:
        ReplayedResponse with the recorded status, headers and body, plus
        the ``x-pollypy-replay`` marker header

    Examples:
        >>> response = replay_response(entry)
        >>> response.headers["x-pollypy-replay"]
        'true'
    """
    stored = entry.response

    return ReplayedResponse(
        status=stored.status,
        headers=add_replay_header(stored.headers),
        body=stored.get_body_bytes(),
    )
