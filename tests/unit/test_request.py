"""Unit tests for PollyRequest setup and bookkeeping."""

import pytest

from pollypy.exceptions import PollyError
from pollypy.identity import compute_request_id
from pollypy.models import Action
from pollypy.request import PollyRequest, RawRequest


@pytest.mark.asyncio
async def test_setup_normalizes_and_assigns_identity(polly):
    request = polly.register_request(
        RawRequest("get", "https://api.example.com/users/1", {"Accept": " text/html "})
    )

    await request.setup()

    assert request.is_setup is True
    assert request.method == "GET"
    assert request.headers == {"accept": "text/html"}
    assert request.id == compute_request_id("GET", "https://api.example.com/users/1", {}, b"")
    assert request.order == 0
    assert request.timestamp is not None and request.timestamp > 0
    assert request.recording_name == "test-recording"


@pytest.mark.asyncio
async def test_setup_is_idempotent(polly):
    request = polly.register_request(RawRequest("GET", "https://x.test/"))

    await request.setup()
    first = (request.id, request.order, request.timestamp)
    await request.setup()

    assert (request.id, request.order, request.timestamp) == first


@pytest.mark.asyncio
async def test_identical_requests_get_increasing_order(polly):
    orders = []
    for _ in range(3):
        request = polly.register_request(RawRequest("GET", "https://x.test/a"))
        await request.setup()
        orders.append(request.order)

    other = polly.register_request(RawRequest("GET", "https://x.test/b"))
    await other.setup()

    assert orders == [0, 1, 2]
    assert other.order == 0


@pytest.mark.asyncio
async def test_match_headers_take_part_in_identity(make_polly):
    polly = make_polly(match_headers=["accept"])
    html = polly.register_request(RawRequest("GET", "https://x.test/", {"Accept": "text/html"}))
    json_ = polly.register_request(
        RawRequest("GET", "https://x.test/", {"Accept": "application/json"})
    )

    await html.setup()
    await json_.setup()

    assert html.id != json_.id
    assert json_.order == 0


@pytest.mark.asyncio
async def test_setup_applies_routes(polly):
    polly.passthrough_when(lambda req: req.url.endswith("/health"))

    health = polly.register_request(RawRequest("GET", "https://x.test/health"))
    users = polly.register_request(RawRequest("GET", "https://x.test/users"))
    await health.setup()
    await users.setup()

    assert health.should_passthrough is True
    assert users.should_passthrough is False


def test_action_starts_unset(polly):
    request = PollyRequest(polly, RawRequest("GET", "https://x.test/"))
    assert request.action is None


def test_action_is_write_once(polly):
    request = PollyRequest(polly, RawRequest("GET", "https://x.test/"))

    request.action = Action.REPLAY

    with pytest.raises(PollyError, match="already set to `replay`"):
        request.action = Action.RECORD
    assert request.action is Action.REPLAY


def test_action_accepts_string_value(polly):
    request = PollyRequest(polly, RawRequest("GET", "https://x.test/"))

    request.action = "passthrough"

    assert request.action is Action.PASSTHROUGH


def test_invalid_action_rejected(polly):
    request = PollyRequest(polly, RawRequest("GET", "https://x.test/"))

    with pytest.raises(PollyError, match="Invalid action"):
        request.action = "teleport"
    assert request.action is None


@pytest.mark.asyncio
async def test_invoke_runs_sync_and_async_handlers_in_order(polly):
    request = PollyRequest(polly, RawRequest("GET", "https://x.test/"))
    seen = []

    def first(req, response):
        seen.append(("first", response))

    async def second(req, response):
        seen.append(("second", response))

    request.add_handler("intercept", first)
    request.add_handler("intercept", second)

    await request._invoke("intercept", "payload")

    assert seen == [("first", "payload"), ("second", "payload")]


@pytest.mark.asyncio
async def test_trigger_runs_session_listeners(polly):
    request = PollyRequest(polly, RawRequest("GET", "https://x.test/"))
    seen = []
    polly.on("beforeReplay", lambda req, payload: seen.append((req, payload)))

    await request._trigger("beforeReplay", "entry")
    await request._trigger("unknownEvent", "ignored")

    assert seen == [(request, "entry")]


@pytest.mark.asyncio
async def test_trigger_returns_listener_replacement(polly):
    request = PollyRequest(polly, RawRequest("GET", "https://x.test/"))
    seen = []

    async def upgrade(req, payload):
        return payload + "-upgraded"

    def observe(req, payload):
        seen.append(payload)

    polly.on("beforeReplay", upgrade)
    polly.on("beforeReplay", observe)
    polly.on("beforeReplay", lambda req, payload: payload + "-again")

    result = await request._trigger("beforeReplay", "entry")

    assert seen == ["entry-upgraded"]
    assert result == "entry-upgraded-again"
    assert await request._trigger("unknownEvent", "unchanged") == "unchanged"


def test_repr(polly):
    request = PollyRequest(polly, RawRequest("GET", "https://x.test/"))
    assert repr(request) == "<PollyRequest GET https://x.test/ order=0>"
