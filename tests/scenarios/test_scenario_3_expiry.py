"""Scenario 3: Expiration and Timing Conformance Tests

This module tests the replay policies through the ASGI middleware:
- Fresh recordings are replayed
- Expired recordings are re-recorded when allowed and online
- Expired recordings are replayed (with a warning) when offline
- Expired recordings are replayed when re-recording is disabled
- The timing option delays replayed responses
"""

import asyncio
import base64
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from pollypy.adapters.asgi import ASGIAdapter, ASGIReplayMiddleware
from pollypy.config import PollyConfig
from pollypy.core.expiration import StaticConnectivity
from pollypy.core.timing import relative
from pollypy.identity import compute_request_id
from pollypy.models import RecordedRequest, RecordedResponse, RecordingEntry
from pollypy.persister.memory import MemoryPersister
from pollypy.session import Polly

RECORDING = "expiry"
URL = "http://testserver/quote"


def stale_entry(age: timedelta, body: bytes = b'{"price": 1}') -> RecordingEntry:
    """A recording of GET /quote made ``age`` ago, answered in 300ms."""
    return RecordingEntry(
        id=compute_request_id("GET", URL, {}, b""),
        order=0,
        recording_name=RECORDING,
        created_at=datetime.now(UTC) - age,
        request=RecordedRequest(method="GET", url=URL, timestamp=1_000),
        response=RecordedResponse(
            status=200,
            headers={"content-type": "application/json"},
            body_b64=base64.b64encode(body).decode("ascii"),
            timestamp=1_300,
        ),
    )


@pytest.fixture
def persister() -> MemoryPersister:
    """Create a fresh in-memory persister for each test."""
    return MemoryPersister()


@pytest.fixture
def connectivity() -> StaticConnectivity:
    """Connectivity probe the tests can switch offline."""
    return StaticConnectivity(online=True)


@pytest.fixture
def calls() -> list[str]:
    """Record of application handler invocations."""
    return []


@pytest.fixture
def make_client(persister, connectivity, calls):
    """Build a client whose session uses the given configuration."""

    def factory(**config: object) -> TestClient:
        polly = Polly(
            RECORDING,
            PollyConfig(mode="replay", **config),
            persister=persister,
            connectivity=connectivity,
        )
        polly.connect_to(ASGIAdapter)

        app = FastAPI()
        app.add_middleware(ASGIReplayMiddleware, polly=polly)

        @app.get("/quote")
        async def quote():
            calls.append("quote")
            return {"price": 2}

        return TestClient(app)

    return factory


def save(persister: MemoryPersister, entry: RecordingEntry) -> None:
    asyncio.run(persister.save_recording_entry(entry))


def test_fresh_recording_replayed(persister, make_client, calls):
    save(persister, stale_entry(timedelta(milliseconds=500)))
    client = make_client(expires_in="1h", record_if_expired=True)

    response = client.get("/quote")

    assert response.json() == {"price": 1}
    assert response.headers["x-pollypy-replay"] == "true"
    assert calls == []


def test_expired_recording_re_recorded_when_online(persister, make_client, calls):
    save(persister, stale_entry(timedelta(seconds=2)))
    client = make_client(expires_in=1000, record_if_expired=True)

    response = client.get("/quote")

    assert response.json() == {"price": 2}
    assert "x-pollypy-replay" not in response.headers
    assert calls == ["quote"]

    entries = asyncio.run(persister.entries(RECORDING))
    assert len(entries) == 1
    assert entries[0].response.get_body_bytes() == b'{"price":2}'
    assert datetime.now(UTC) - entries[0].created_at < timedelta(minutes=1)


def test_expired_recording_replayed_when_offline(persister, make_client, connectivity, calls):
    connectivity.online = False
    save(persister, stale_entry(timedelta(seconds=2)))
    client = make_client(expires_in=1000, record_if_expired=True)

    with capture_logs() as logs:
        response = client.get("/quote")

    assert response.json() == {"price": 1}
    assert calls == []
    warnings = [log for log in logs if log["event"] == "recording.expired"]
    assert len(warnings) == 1
    assert warnings[0]["log_level"] == "warning"
    assert warnings[0]["url"] == URL


def test_expired_recording_replayed_without_record_if_expired(persister, make_client, calls):
    save(persister, stale_entry(timedelta(days=30)))
    client = make_client(expires_in="1d")

    with capture_logs() as logs:
        response = client.get("/quote")

    assert response.json() == {"price": 1}
    assert calls == []
    assert any("`record_if_expired` is disabled" in log.get("reason", "") for log in logs)


def test_timing_delays_replay(persister, make_client, monkeypatch):
    save(persister, stale_entry(timedelta(seconds=1)))
    delays: list[float] = []

    async def fake_delay(delay_ms: float) -> None:
        delays.append(delay_ms)

    monkeypatch.setattr("pollypy.core.adapter.simulate_delay", fake_delay)
    client = make_client(timing=relative(0.5))

    response = client.get("/quote")

    assert response.json() == {"price": 1}
    assert delays == [150]
