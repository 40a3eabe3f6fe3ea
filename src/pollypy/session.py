"""Recording session: mode, configuration, adapters and routes.

A Polly session owns everything shared by the requests of one test run: the
session mode, the configuration, the persister, the connectivity probe, the
connected adapters and the route rules that mark requests for passthrough
or interception.

Examples:
    Replaying with a fallback to recording::

        from pollypy import Polly, PollyConfig
        from pollypy.adapters.asgi import ASGIAdapter

        async with Polly("users-api", PollyConfig(mode="replay")) as polly:
            polly.connect_to(ASGIAdapter)
            polly.passthrough_when(lambda req: req.url.endswith("/health"))
            ...

    Stubbing an endpoint::

        def stub_user(request, response):
            response.set_status(200).json({"id": 1, "name": "Ada"})

        polly.intercept_when(lambda req: "/users/1" in req.url, stub_user)
"""

from collections.abc import Callable
from typing import Any, NoReturn

from pollypy.config import PollyConfig
from pollypy.core.adapter import Adapter
from pollypy.core.expiration import AlwaysOnline, ConnectivityProbe
from pollypy.exceptions import PollyError
from pollypy.models import Mode
from pollypy.observability.logging import get_logger
from pollypy.persister.base import Persister
from pollypy.persister.memory import MemoryPersister
from pollypy.request import Handler, PollyRequest, RawRequest

logger = get_logger(__name__)

Predicate = Callable[[PollyRequest], bool]


class Route:
    """A rule applied to every request during setup.

    Attributes:
        predicate: Returns True for requests the rule applies to
        kind: "passthrough" or "intercept"
        handler: Intercept handler (None for passthrough rules)
    """

    def __init__(self, predicate: Predicate, kind: str, handler: Handler | None = None) -> None:
        self.predicate = predicate
        self.kind = kind
        self.handler = handler


class Polly:
    """A record/replay session.

    Attributes:
        recording_name: Name under which interactions are stored
        config: Session configuration
        mode: Current session mode
        persister: Storage for recordings
        connectivity: Connectivity signal used by the expiration policy
    """

    Modes = Mode

    def __init__(
        self,
        recording_name: str,
        config: PollyConfig | None = None,
        persister: Persister | None = None,
        connectivity: ConnectivityProbe | None = None,
    ) -> None:
        """Initialize a session.

        Args:
            recording_name: Name under which interactions are stored
            config: Session configuration (defaults if not provided)
            persister: Storage for recordings (in-memory if not provided)
            connectivity: Connectivity probe (always online if not provided)
        """
        if not recording_name:
            raise PollyError("[Polly] A recording name is required.")

        self.recording_name = recording_name
        self.config = config or PollyConfig()
        self.mode: Mode | str = self.config.mode
        self.persister: Persister = persister or MemoryPersister()
        self.connectivity: ConnectivityProbe = connectivity or AlwaysOnline()
        self._adapters: dict[str, Adapter] = {}
        self._order_counts: dict[str, int] = {}
        self._routes: list[Route] = []
        self._listeners: dict[str, list[Handler]] = {}

    async def __aenter__(self) -> "Polly":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    def record(self) -> None:
        self._set_mode(Mode.RECORD)

    def replay(self) -> None:
        self._set_mode(Mode.REPLAY)

    def passthrough(self) -> None:
        self._set_mode(Mode.PASSTHROUGH)

    def _set_mode(self, mode: Mode) -> None:
        logger.debug("session.mode_changed", recording_name=self.recording_name, mode=mode.value)
        self.mode = mode

    def configure(self, **changes: Any) -> PollyConfig:
        """Replace the configuration with ``changes`` applied and validated.

        A ``mode`` change also switches the session mode.

        Returns:
            The new configuration.
        """
        self.config = PollyConfig(**{**self.config.model_dump(), **changes})
        if "mode" in changes:
            self._set_mode(self.config.mode)
        return self.config

    @property
    def adapters(self) -> dict[str, Adapter]:
        return dict(self._adapters)

    def connect_to(self, adapter_cls: type[Adapter]) -> Adapter:
        """Create (once per adapter id) and connect an adapter.

        Args:
            adapter_cls: The Adapter subclass to connect

        Returns:
            The session's instance for that adapter id
        """
        self.assert_(
            f"Invalid adapter provided: {adapter_cls!r}. Adapters must define an `id`.",
            isinstance(adapter_cls, type) and issubclass(adapter_cls, Adapter) and bool(adapter_cls.id),
        )

        adapter_id = adapter_cls.id
        assert adapter_id is not None
        adapter = self._adapters.get(adapter_id)
        if adapter is None:
            adapter = adapter_cls(self)
            self._adapters[adapter_id] = adapter

        adapter.connect()
        return adapter

    def disconnect_from(self, adapter_id: str) -> None:
        adapter = self._adapters.get(adapter_id)
        if adapter is not None:
            adapter.disconnect()

    def disconnect(self) -> None:
        for adapter in self._adapters.values():
            adapter.disconnect()

    async def stop(self) -> None:
        """Disconnect every adapter and flush the persister."""
        self.disconnect()
        await self.persister.persist()
        logger.debug("session.stopped", recording_name=self.recording_name)

    def passthrough_when(self, predicate: Predicate) -> None:
        """Let matching requests reach the network regardless of mode."""
        self._routes.append(Route(predicate, "passthrough"))

    def intercept_when(self, predicate: Predicate, handler: Handler) -> None:
        """Answer matching requests with ``handler(request, response)``."""
        self._routes.append(Route(predicate, "intercept", handler))

    def on(self, event_name: str, listener: Handler) -> None:
        """Register ``listener(request, payload)`` for an event such as beforeReplay.

        A beforeReplay listener may return a replacement RecordingEntry, which
        is then used for the expiration check, the timing delay and the replay.
        """
        self._listeners.setdefault(event_name, []).append(listener)

    def _listeners_for(self, event_name: str) -> list[Handler]:
        return list(self._listeners.get(event_name, []))

    def _apply_routes(self, request: PollyRequest) -> None:
        for route in self._routes:
            if not route.predicate(request):
                continue

            if route.kind == "passthrough":
                request.should_passthrough = True
            elif route.handler is not None:
                request.should_intercept = True
                request.add_handler("intercept", route.handler)

    def _next_order(self, request_id: str) -> int:
        order = self._order_counts.get(request_id, 0)
        self._order_counts[request_id] = order + 1
        return order

    def register_request(self, raw_request: RawRequest) -> PollyRequest:
        """Wrap a transport request for dispatch."""
        return PollyRequest(self, raw_request)

    def assert_(
        self,
        message: str,
        predicate: bool,
        error: type[PollyError] = PollyError,
        **details: Any,
    ) -> None:
        """Fail with ``error`` when ``predicate`` is false.

        Args:
            message: Description of the failure
            predicate: The condition that must hold
            error: PollyError subclass to raise
            **details: Extra constructor arguments for ``error``

        Raises:
            PollyError: If the predicate is false
        """
        if not predicate:
            self.fail(message, error, **details)

    def fail(self, message: str, error: type[PollyError] = PollyError, **details: Any) -> NoReturn:
        raise error(f"[Polly] {message}", **details)
