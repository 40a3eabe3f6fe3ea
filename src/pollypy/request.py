"""Request objects handed to the dispatch engine.

Transports describe an outbound call as a RawRequest. The session wraps it
in a PollyRequest, which carries everything the dispatch engine reads
(identity, order, route overrides) and the single action it writes.

Examples:
    Registering and setting up a request::

        from pollypy.request import RawRequest

        raw = RawRequest("GET", "https://api.example.com/users?page=2")
        request = polly.register_request(raw)
        await request.setup()

        request.id       # identity hash used for matching
        request.order    # 0 for the first identical request, 1 for the next...
"""

import inspect
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pollypy.exceptions import PollyError
from pollypy.identity import compute_request_id
from pollypy.models import Action, InterceptedResponse
from pollypy.utils.headers import normalize_headers

if TYPE_CHECKING:
    from pollypy.session import Polly

Handler = Callable[["PollyRequest", Any], Any]


class RawRequest:
    """Transport-level description of an outbound request.

    Attributes:
        method: HTTP method
        url: Absolute URL
        headers: Request headers
        body: Request body as bytes
    """

    def __init__(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
    ) -> None:
        self.method = method
        self.url = url
        self.headers = headers or {}
        self.body = body


class PollyRequest:
    """One intercepted request as seen by the dispatch engine.

    Created by ``Polly.register_request``; discarded once its hook returns.
    Route rules run during ``setup`` and may set ``should_passthrough`` or
    ``should_intercept``.

    Attributes:
        raw: The transport's RawRequest
        method: HTTP method, uppercased by setup
        url: Absolute URL
        headers: Request headers, lowercased by setup
        body: Request body
        recording_name: Recording this request belongs to
        id: Identity hash (None until setup)
        order: Occurrence of this identity within the session
        timestamp: When setup ran, in epoch milliseconds (None until setup)
        response: Response built by intercept handlers
        should_passthrough: Route override forcing PASSTHROUGH
        should_intercept: Route override forcing INTERCEPT
    """

    def __init__(self, polly: "Polly", raw: RawRequest) -> None:
        self.polly = polly
        self.raw = raw
        self.method = raw.method
        self.url = raw.url
        self.headers = dict(raw.headers)
        self.body = raw.body
        self.recording_name = polly.recording_name
        self.id: str | None = None
        self.order = 0
        self.timestamp: float | None = None
        self.response = InterceptedResponse()
        self.should_passthrough = False
        self.should_intercept = False
        self._action: Action | None = None
        self._handlers: dict[str, list[Handler]] = {}
        self._is_setup = False

    @property
    def action(self) -> Action | None:
        return self._action

    @action.setter
    def action(self, value: Action | str) -> None:
        if self._action is not None:
            raise PollyError(
                f"[Polly] Action for {self.method} {self.url} is already set to "
                f"`{self._action.value}`."
            )

        try:
            self._action = Action(value)
        except ValueError as e:
            raise PollyError(f"[Polly] Invalid action: {value!r}.") from e

    @property
    def is_setup(self) -> bool:
        return self._is_setup

    def add_handler(self, hook_name: str, handler: Handler) -> None:
        """Register a handler run by ``_invoke(hook_name, ...)``."""
        self._handlers.setdefault(hook_name, []).append(handler)

    async def setup(self) -> None:
        """Normalize the request, assign identity and order, apply routes.

        Calling setup more than once has no further effect.
        """
        if self._is_setup:
            return

        self.method = self.method.upper()
        self.headers = normalize_headers(self.headers)
        self.id = compute_request_id(
            method=self.method,
            url=self.url,
            headers=self.headers,
            body=self.body,
            included_headers=list(self.polly.config.match_headers),
        )
        self.order = self.polly._next_order(self.id)
        self.timestamp = time.time() * 1000
        self.polly._apply_routes(self)
        self._is_setup = True

    async def _invoke(self, hook_name: str, response: Any) -> None:
        """Run this request's handlers for ``hook_name`` in registration order."""
        for handler in self._handlers.get(hook_name, []):
            result = handler(self, response)
            if inspect.isawaitable(result):
                await result

    async def _trigger(self, event_name: str, payload: Any) -> Any:
        """Run the session's listeners for ``event_name`` in registration order.

        A listener may return a replacement for the payload (recording
        entries are frozen, so ``entry.model_copy(update=...)``); the next
        listener receives the replacement.

        Returns:
            The last non-None value a listener returned, or ``payload``.
        """
        for listener in self.polly._listeners_for(event_name):
            result = listener(self, payload)
            if inspect.isawaitable(result):
                result = await result
            if result is not None:
                payload = result
        return payload

    def __repr__(self) -> str:
        return f"<PollyRequest {self.method} {self.url} order={self.order}>"
