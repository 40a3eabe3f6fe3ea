"""
Pytest configuration and shared fixtures for pollypy tests.
"""

import base64
from datetime import UTC, datetime

import pytest

from pollypy.config import PollyConfig
from pollypy.core.adapter import Adapter
from pollypy.core.expiration import StaticConnectivity
from pollypy.core.replay import ReplayedResponse, build_recording_entry, replay_response
from pollypy.identity import compute_request_id
from pollypy.models import RecordedRequest, RecordedResponse, RecordingEntry
from pollypy.persister.memory import MemoryPersister
from pollypy.session import Polly

RECORDING_NAME = "test-recording"


class FakeAdapter(Adapter):
    """Adapter that records which hooks ran instead of touching a network."""

    id = "fake"

    def __init__(self, polly: Polly) -> None:
        super().__init__(polly)
        self.calls: list[tuple[str, object]] = []
        self.connect_count = 0
        self.disconnect_count = 0

    def string_id(self) -> str:
        return "fake"

    def on_connect(self) -> None:
        self.connect_count += 1

    def on_disconnect(self) -> None:
        self.disconnect_count += 1

    async def on_passthrough(self, request):
        self.calls.append(("passthrough", request))
        return ReplayedResponse(200, {"content-type": "text/plain"}, b"live")

    async def on_intercept(self, request, response):
        self.calls.append(("intercept", request))
        return response

    async def on_record(self, request):
        self.calls.append(("record", request))
        response = ReplayedResponse(200, {"content-type": "text/plain"}, b"recorded")
        entry = build_recording_entry(request, response, finished_ms=request.timestamp + 100)
        await self.persister.save_recording_entry(entry)
        return response

    async def on_replay(self, request, recording_entry):
        self.calls.append(("replay", request))
        return replay_response(recording_entry)

    @property
    def hooks_called(self) -> list[str]:
        return [name for name, _ in self.calls]


def make_entry(
    method: str = "GET",
    url: str = "https://api.example.com/users/1",
    *,
    order: int = 0,
    recording_name: str = RECORDING_NAME,
    created_at: datetime | None = None,
    request_ts: float = 0.0,
    response_ts: float = 250.0,
    status: int = 200,
    body: bytes = b"from-recording",
) -> RecordingEntry:
    """Build an entry that matches a body-less request to ``method url``."""
    return RecordingEntry(
        id=compute_request_id(method, url, {}, b""),
        order=order,
        recording_name=recording_name,
        created_at=created_at or datetime.now(UTC),
        request=RecordedRequest(method=method, url=url, timestamp=request_ts),
        response=RecordedResponse(
            status=status,
            headers={"content-type": "text/plain"},
            body_b64=base64.b64encode(body).decode("ascii"),
            timestamp=response_ts,
        ),
    )


@pytest.fixture
def persister() -> MemoryPersister:
    """Create a fresh in-memory persister for each test."""
    return MemoryPersister()


@pytest.fixture
def connectivity() -> StaticConnectivity:
    """Connectivity probe that tests can switch offline."""
    return StaticConnectivity(online=True)


@pytest.fixture
def make_polly(persister: MemoryPersister, connectivity: StaticConnectivity):
    """Factory for sessions sharing the test's persister and connectivity."""

    def factory(**config: object) -> Polly:
        return Polly(
            RECORDING_NAME,
            PollyConfig(**config),
            persister=persister,
            connectivity=connectivity,
        )

    return factory


@pytest.fixture
def polly(make_polly) -> Polly:
    """A replay-mode session with default policies."""
    return make_polly(mode="replay")


@pytest.fixture
def adapter(polly: Polly) -> FakeAdapter:
    """A connected FakeAdapter on the default session."""
    return polly.connect_to(FakeAdapter)  # type: ignore[return-value]


@pytest.fixture
def entry_factory():
    """Provide ``make_entry`` to tests."""
    return make_entry


@pytest.fixture
def fake_adapter_cls() -> type[FakeAdapter]:
    """Provide the FakeAdapter class to tests."""
    return FakeAdapter
