"""ASGI integration for FastAPI and Starlette applications.

This module records and replays the responses of an ASGI application. The
middleware sits in front of the application and, while the session's
ASGIAdapter is connected, routes every HTTP request through the dispatch
engine:

1. Converts the Starlette request to a RawRequest
2. Lets the adapter decide: passthrough, intercept, record or replay
3. Converts the chosen response back to a Starlette Response

When the adapter is disconnected, requests go straight to the application.

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from pollypy import Polly, PollyConfig
        from pollypy.adapters.asgi import ASGIAdapter, ASGIReplayMiddleware

        polly = Polly("upstream-api", PollyConfig(mode="record"))
        polly.connect_to(ASGIAdapter)

        app = FastAPI()
        app.add_middleware(ASGIReplayMiddleware, polly=polly)

    Starlette integration::

        from starlette.applications import Starlette
        from starlette.middleware import Middleware

        app = Starlette(middleware=[Middleware(ASGIReplayMiddleware, polly=polly)])
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response

from pollypy.core.adapter import Adapter
from pollypy.core.replay import ReplayedResponse, build_recording_entry, replay_response
from pollypy.exceptions import PollyError
from pollypy.models import InterceptedResponse, RecordingEntry
from pollypy.observability.logging import get_logger
from pollypy.request import PollyRequest, RawRequest
from pollypy.session import Polly
from pollypy.utils.headers import collect_headers

logger = get_logger(__name__)

Forward = Callable[[], Awaitable[ReplayedResponse]]


class ASGIRawRequest(RawRequest):
    """RawRequest that can be forwarded to the wrapped application.

    Attributes:
        forward: Calls the application and returns its response
    """

    def __init__(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes,
        forward: Forward,
    ) -> None:
        super().__init__(method, url, headers, body)
        self.forward = forward


class ASGIAdapter(Adapter):
    """Adapter whose transport is the wrapped ASGI application."""

    id = "asgi"

    def string_id(self) -> str:
        return "asgi"

    def on_connect(self) -> None:
        logger.info("asgi.attached", recording_name=self.polly.recording_name)

    def on_disconnect(self) -> None:
        logger.info("asgi.detached", recording_name=self.polly.recording_name)

    async def on_passthrough(self, request: PollyRequest) -> ReplayedResponse:
        return await self._forward(request)

    async def on_intercept(
        self, request: PollyRequest, response: InterceptedResponse
    ) -> ReplayedResponse:
        return ReplayedResponse(
            status=response.status,
            headers=dict(response.headers),
            body=response.body,
        )

    async def on_record(self, request: PollyRequest) -> ReplayedResponse:
        response = await self._forward(request)

        entry = build_recording_entry(request, response, finished_ms=time.time() * 1000)
        await self.persister.save_recording_entry(entry)

        logger.debug(
            "asgi.recorded",
            method=request.method,
            url=request.url,
            status=response.status,
            order=request.order,
        )
        return response

    async def on_replay(
        self, request: PollyRequest, recording_entry: RecordingEntry
    ) -> ReplayedResponse:
        return replay_response(recording_entry)

    async def _forward(self, request: PollyRequest) -> ReplayedResponse:
        raw = request.raw
        if not isinstance(raw, ASGIRawRequest):
            self._fail(
                f"Cannot forward {request.method} {request.url}: not an ASGI request.",
                PollyError,
            )
        return await raw.forward()


class ASGIReplayMiddleware(BaseHTTPMiddleware):
    """ASGI middleware routing requests through a session's ASGIAdapter.

    Attributes:
        polly: The session whose ASGIAdapter makes the decisions
    """

    def __init__(self, app: Any, polly: Polly) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            polly: The session to dispatch through
        """
        super().__init__(app)
        self.polly = polly

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[Response]],
    ) -> Response:
        """Dispatch an HTTP request through the session's ASGIAdapter.

        Args:
            request: The Starlette request object
            call_next: Function to call the next middleware/handler

        Returns:
            Starlette Response object
        """
        adapter = self.polly.adapters.get(ASGIAdapter.id)
        if adapter is None or not adapter.is_connected:
            return await call_next(request)

        async def forward() -> ReplayedResponse:
            response = await call_next(request)
            return ReplayedResponse(
                status=response.status_code,
                headers=collect_headers(response.headers.raw),
                body=await self._read_body(response),
            )

        raw = ASGIRawRequest(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
            body=await request.body(),
            forward=forward,
        )

        result = await adapter.handle_request(raw)
        return self._convert_response(result.response)

    async def _read_body(self, response: Response) -> bytes:
        body = b""
        if hasattr(response, "body_iterator"):
            async for chunk in response.body_iterator:
                if isinstance(chunk, (bytes, bytearray, memoryview)):
                    body += bytes(chunk)
                else:
                    body += chunk.encode("utf-8")
        else:
            body = bytes(response.body)
        return body

    def _convert_response(self, response: ReplayedResponse) -> Response:
        headers: dict[str, str] = {}
        repeated: list[tuple[str, str]] = []
        for key, value in response.headers.items():
            # content-length is recomputed by Starlette from the body
            if key.lower() == "content-length":
                continue
            if isinstance(value, list):
                repeated.extend((key, item) for item in value)
            else:
                headers[key] = value

        converted = Response(
            content=response.body,
            status_code=response.status,
            headers=headers,
        )
        for key, item in repeated:
            converted.headers.append(key, item)
        return converted
