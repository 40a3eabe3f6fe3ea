"""Core type definitions and models for pollypy.

This module provides the data structures shared by the dispatch engine, the
persisters and the transport integrations: session modes, per-request
actions, recorded interactions and the response object that intercept
handlers build up.

Examples:
    Creating a recording entry::

        from datetime import UTC, datetime
        from pollypy.models import RecordedRequest, RecordedResponse, RecordingEntry

        entry = RecordingEntry(
            id="a" * 64,
            order=0,
            recording_name="users-api",
            created_at=datetime.now(UTC),
            request=RecordedRequest(
                method="GET",
                url="https://api.example.com/users/1",
                timestamp=1_700_000_000_000.0,
            ),
            response=RecordedResponse(
                status=200,
                headers={"content-type": "application/json"},
                body_b64="eyJpZCI6IDF9",
                timestamp=1_700_000_000_250.0,
            ),
        )

    Building an intercepted response::

        response = InterceptedResponse()
        response.set_status(201).set_header("x-source", "stub").json({"id": 1})
"""

import base64
import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from pollypy.utils.headers import HeaderValue


class Mode(str, Enum):
    """Session-wide default behavior.

    There is no intercept mode: interception is always a per-request
    override set by route rules.

    Attributes:
        RECORD: Perform every request live and store the interaction.
        REPLAY: Answer requests from stored interactions.
        PASSTHROUGH: Let every request reach the network untouched.
    """

    RECORD = "record"
    REPLAY = "replay"
    PASSTHROUGH = "passthrough"


class Action(str, Enum):
    """Terminal decision taken for a single request.

    Attributes:
        RECORD: The request was performed live and recorded.
        REPLAY: The response was synthesized from a recording.
        INTERCEPT: The response was produced by an intercept handler.
        PASSTHROUGH: The request reached the network unmodified.
    """

    RECORD = "record"
    REPLAY = "replay"
    INTERCEPT = "intercept"
    PASSTHROUGH = "passthrough"


def _validate_b64(v: str) -> str:
    try:
        base64.b64decode(v, validate=True)
    except Exception as e:
        raise ValueError(f"Invalid base64 encoding: {e}") from e
    return v


class RecordedRequest(BaseModel):
    """The request half of a recorded interaction.

    Attributes:
        method: HTTP method, uppercase.
        url: Absolute request URL.
        headers: Request headers as recorded.
        body_b64: Base64-encoded request body.
        timestamp: When the request was sent, in epoch milliseconds.
    """

    method: str = Field(..., min_length=1, examples=["GET", "POST"])
    url: str = Field(..., min_length=1, examples=["https://api.example.com/users"])
    headers: dict[str, str] = Field(default_factory=dict)
    body_b64: str = Field(default="")
    timestamp: float = Field(..., ge=0, description="Epoch milliseconds")

    model_config = {"frozen": True}

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Normalize the method to uppercase."""
        return v.upper()

    @field_validator("body_b64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Validate that the body is properly base64-encoded."""
        return _validate_b64(v)

    def get_body_bytes(self) -> bytes:
        """Decode and return the request body as bytes."""
        return base64.b64decode(self.body_b64)


class RecordedResponse(BaseModel):
    """The response half of a recorded interaction.

    The body is base64-encoded so binary payloads survive any persister.

    Attributes:
        status: HTTP status code.
        headers: Response headers, volatile headers already stripped. A repeated
            header (set-cookie) maps to the list of its values.
        body_b64: Base64-encoded response body.
        timestamp: When the response was received, in epoch milliseconds.

    Examples:
        >>> response = RecordedResponse(status=200, body_b64="SGVsbG8=", timestamp=0)
        >>> response.get_body_bytes()
        b'Hello'
    """

    status: int = Field(..., ge=100, le=599, examples=[200, 404])
    headers: dict[str, HeaderValue] = Field(default_factory=dict)
    body_b64: str = Field(default="")
    timestamp: float = Field(..., ge=0, description="Epoch milliseconds")

    model_config = {"frozen": True}

    @field_validator("body_b64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Validate that the body is properly base64-encoded.

        Args:
            v: The base64-encoded string to validate.

        Returns:
            The validated base64 string.

        Raises:
            ValueError: If the string is not valid base64.
        """
        return _validate_b64(v)

    def get_body_bytes(self) -> bytes:
        """Decode and return the response body as bytes."""
        return base64.b64decode(self.body_b64)


class RecordingEntry(BaseModel):
    """One previously captured interaction.

    Entries are immutable; the dispatch engine only reads them.

    Attributes:
        id: Request identity hash (64 hex characters).
        order: Occurrence of this identity within the recording, from 0.
        recording_name: Name of the recording the entry belongs to.
        created_at: When the interaction was recorded (timezone-aware).
        request: The recorded request.
        response: The recorded response.
    """

    id: str = Field(..., pattern=r"^[a-f0-9]{64}$")
    order: int = Field(default=0, ge=0)
    recording_name: str = Field(..., min_length=1)
    created_at: datetime
    request: RecordedRequest
    response: RecordedResponse

    model_config = {"frozen": True}

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC so age comparisons are well defined."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class InterceptedResponse:
    """A response being built by intercept handlers.

    Attributes:
        status: HTTP status code (defaults to 200).
        headers: Response headers.
        body: Response body as bytes.
        sent: True once a handler called ``send`` or ``json``.
    """

    def __init__(self) -> None:
        self.status = 200
        self.headers: dict[str, str] = {}
        self.body = b""
        self.sent = False

    def set_status(self, status: int) -> "InterceptedResponse":
        if not (100 <= status <= 599):
            raise ValueError(f"Invalid HTTP status code: {status}")
        self.status = status
        return self

    def set_header(self, name: str, value: str) -> "InterceptedResponse":
        self.headers[name.lower()] = value
        return self

    def send(self, body: bytes | str = b"") -> "InterceptedResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.sent = True
        return self

    def json(self, data: Any) -> "InterceptedResponse":
        self.set_header("content-type", "application/json")
        return self.send(json.dumps(data))
