"""Adapter base class: hook contract, lifecycle gate and dispatch.

Every transport integration (ASGI, an HTTP client, a raw socket layer, ...)
subclasses Adapter and implements its hooks. The transport calls
``handle_request`` for each intercepted call and the adapter decides,
exactly once, what happens to it:

    PASSTHROUGH | INTERCEPT | RECORD | REPLAY

Decision order (first match wins), after the request's setup completes:
    1. Session mode PASSTHROUGH, or request.should_passthrough -> PASSTHROUGH
    2. request.should_intercept -> INTERCEPT
    3. Session mode RECORD -> RECORD
    4. Session mode REPLAY -> replay procedure
    5. Anything else -> UnhandledRequestError

The replay procedure can only transition to RECORD (missing recording with
``record_if_missing``, or an expired recording that may be renewed); it
never loops back into itself.

Examples:
    A minimal integration::

        from pollypy.core.adapter import Adapter

        class EchoAdapter(Adapter):
            id = "echo"

            def string_id(self) -> str:
                return "echo"

            def on_connect(self) -> None:
                install_hooks()

            def on_disconnect(self) -> None:
                remove_hooks()

            async def on_passthrough(self, request):
                return await send_live(request)

            async def on_intercept(self, request, response):
                return response

            async def on_record(self, request):
                response = await send_live(request)
                await self.persister.save_recording_entry(to_entry(request, response))
                return response

            async def on_replay(self, request, recording_entry):
                return from_entry(recording_entry)

        polly = Polly("my-recording")
        adapter = polly.connect_to(EchoAdapter)
        result = await adapter.handle_request(RawRequest("GET", "https://example.com"))
"""

from typing import TYPE_CHECKING, Any, ClassVar, NoReturn

from pollypy.core.expiration import should_re_record
from pollypy.core.timing import compute_delay, simulate_delay
from pollypy.exceptions import (
    HookNotImplementedError,
    MissingRecordingError,
    PollyError,
    UnhandledRequestError,
)
from pollypy.models import Action, InterceptedResponse, Mode, RecordingEntry
from pollypy.observability.logging import get_logger
from pollypy.observability.metrics import record_action, record_missing, record_replay_delay
from pollypy.persister.base import Persister

if TYPE_CHECKING:
    from pollypy.request import PollyRequest, RawRequest
    from pollypy.session import Polly

logger = get_logger(__name__)


class DispatchResult:
    """Outcome of dispatching one request.

    Attributes:
        request: The dispatched request
        action: The terminal action taken
        response: Whatever the chosen hook returned
        recording_entry: The replayed entry (None unless action is REPLAY)
    """

    def __init__(
        self,
        request: "PollyRequest",
        action: Action,
        response: Any,
        recording_entry: RecordingEntry | None = None,
    ) -> None:
        """Initialize a dispatch result.

        Args:
            request: The dispatched request
            action: The terminal action taken
            response: The hook's return value
            recording_entry: The replayed entry, if any
        """
        self.request = request
        self.action = action
        self.response = response
        self.recording_entry = recording_entry


class Adapter:
    """Base class for transport integrations.

    Subclasses must set ``id`` and implement every ``on_*`` hook and
    ``string_id``. Unimplemented hooks fail at call time with
    HookNotImplementedError.

    Attributes:
        id: Adapter kind; the session keeps one instance per id.
        polly: The owning session.
        is_connected: Whether the transport is currently intercepted.
    """

    id: ClassVar[str | None] = None

    def __init__(self, polly: "Polly") -> None:
        """Initialize an adapter for a session.

        Args:
            polly: The owning session
        """
        self.polly = polly
        self.is_connected = False

    @property
    def persister(self) -> Persister:
        return self.polly.persister

    def connect(self) -> None:
        """Attach to the transport; a no-op if already connected."""
        if not self.is_connected:
            self.on_connect()
            self.is_connected = True
            logger.debug("adapter.connected", adapter=self.id)

    def disconnect(self) -> None:
        """Detach from the transport; a no-op if not connected."""
        if self.is_connected:
            self.on_disconnect()
            self.is_connected = False
            logger.debug("adapter.disconnected", adapter=self.id)

    def should_re_record(self, recording_entry: RecordingEntry) -> bool:
        """Return True if an expired entry should be replaced by a live recording."""
        return should_re_record(recording_entry, self.polly.config, self.polly.connectivity)

    async def timeout(self, request: "PollyRequest", recording_entry: RecordingEntry) -> float:
        """Wait the simulated latency for replaying ``recording_entry``.

        Returns:
            The delay applied, in milliseconds.
        """
        delay_ms = compute_delay(self.polly.config.timing, recording_entry)
        if delay_ms > 0:
            record_replay_delay(delay_ms)
            await simulate_delay(delay_ms)
        return delay_ms

    async def handle_request(self, raw_request: "RawRequest") -> DispatchResult:
        """Dispatch an intercepted request.

        This is the single entry point for transports. The request is
        registered with the session and set up before any decision is made.

        Args:
            raw_request: The transport's view of the outbound request

        Returns:
            DispatchResult with the action taken and the hook's return value

        Raises:
            MissingRecordingError: Replay mode, no recording, and
                ``record_if_missing`` disabled
            UnhandledRequestError: The session mode is invalid
            HookNotImplementedError: The chosen hook is not implemented
        """
        request = self.polly.register_request(raw_request)
        await request.setup()

        action = self._decide(request)
        recording_entry: RecordingEntry | None = None

        if action is Action.REPLAY:
            action, recording_entry = await self._resolve_replay(request)

        if action is Action.PASSTHROUGH:
            response = await self.passthrough(request)
        elif action is Action.INTERCEPT:
            response = await self.intercept(request)
        elif action is Action.RECORD:
            response = await self.record(request)
        elif action is Action.REPLAY and recording_entry is not None:
            response = await self.replay(request, recording_entry)
        else:
            self._fail(
                f"Unhandled request: {request.method} {request.url}.",
                UnhandledRequestError,
                method=request.method,
                url=request.url,
            )

        return DispatchResult(request, action, response, recording_entry)

    def _decide(self, request: "PollyRequest") -> Action | None:
        mode = self.polly.mode

        if mode == Mode.PASSTHROUGH or request.should_passthrough:
            return Action.PASSTHROUGH

        if request.should_intercept:
            return Action.INTERCEPT

        if mode == Mode.RECORD:
            return Action.RECORD

        if mode == Mode.REPLAY:
            return Action.REPLAY

        return None

    async def _resolve_replay(
        self, request: "PollyRequest"
    ) -> tuple[Action, RecordingEntry | None]:
        """Find the recording to replay, or fall back to recording.

        Returns:
            (Action.REPLAY, entry) to replay the entry, or
            (Action.RECORD, None) to record the request instead
        """
        recording_entry = await self.persister.find_recording_entry(request)

        if recording_entry is not None:
            recording_entry = await request._trigger("beforeReplay", recording_entry)

            if self.should_re_record(recording_entry):
                return Action.RECORD, None

            return Action.REPLAY, recording_entry

        if self.polly.config.record_if_missing:
            return Action.RECORD, None

        record_missing()
        self._fail(
            "Recording for the following request is not found and "
            f"`record_if_missing` is `false`.\n{request.method} {request.url}\n",
            MissingRecordingError,
            method=request.method,
            url=request.url,
        )

    def _log_action(self, request: "PollyRequest") -> None:
        record_action(request.action.value)
        logger.debug(
            "request.dispatched",
            adapter=self.id,
            method=request.method,
            url=request.url,
            action=request.action.value,
            order=request.order,
        )

    async def passthrough(self, request: "PollyRequest") -> Any:
        request.action = Action.PASSTHROUGH
        self._log_action(request)
        return await self.on_passthrough(request)

    async def intercept(self, request: "PollyRequest") -> Any:
        request.action = Action.INTERCEPT
        self._log_action(request)
        await request._invoke("intercept", request.response)
        if not request.response.sent:
            logger.warning(
                "intercept.unsent",
                reason="No intercept handler sent a response; delivering the default response.",
                method=request.method,
                url=request.url,
                status=request.response.status,
            )
        return await self.on_intercept(request, request.response)

    async def record(self, request: "PollyRequest") -> Any:
        request.action = Action.RECORD
        self._log_action(request)
        return await self.on_record(request)

    async def replay(self, request: "PollyRequest", recording_entry: RecordingEntry) -> Any:
        await self.timeout(request, recording_entry)
        request.action = Action.REPLAY
        self._log_action(request)
        return await self.on_replay(request, recording_entry)

    def assert_(
        self,
        message: str,
        predicate: bool,
        error: type[PollyError] = PollyError,
        **details: Any,
    ) -> None:
        """Session assertion with the adapter's name prefixed to the message."""
        if not predicate:
            self._fail(message, error, **details)

    def _fail(self, message: str, error: type[PollyError], **details: Any) -> NoReturn:
        self.polly.fail(f"[Adapter:{self.string_id()}] {message}", error, **details)

    def _missing_hook(self, hook: str) -> NoReturn:
        self._fail(f"Must implement the `{hook}` hook.", HookNotImplementedError, hook=hook)

    def string_id(self) -> str:
        """Name of the adapter used in diagnostics. Must be overridden."""
        # _fail would call string_id again
        self.polly.fail(
            "Must implement the `string_id` hook.",
            HookNotImplementedError,
            hook="string_id",
        )

    def on_connect(self) -> None:
        self._missing_hook("on_connect")

    def on_disconnect(self) -> None:
        self._missing_hook("on_disconnect")

    async def on_passthrough(self, request: "PollyRequest") -> Any:
        self._missing_hook("on_passthrough")

    async def on_intercept(self, request: "PollyRequest", response: InterceptedResponse) -> Any:
        self._missing_hook("on_intercept")

    async def on_record(self, request: "PollyRequest") -> Any:
        self._missing_hook("on_record")

    async def on_replay(self, request: "PollyRequest", recording_entry: RecordingEntry) -> Any:
        self._missing_hook("on_replay")
