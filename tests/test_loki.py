"""Tests for the Loki sink."""
import httpx
import orjson
import pytest
from signal_exporter.adapters.loki import LokiClient
from signal_exporter.errors import ForwardError, SinkRejected, SinkUnavailable


def _client(handler, loki_url="http://loki:3100"):
    return LokiClient(loki_url, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_forward_empty_batch_makes_no_request():
    requests = []

    async def handler(request):
        requests.append(request)
        return httpx.Response(204)

    await _client(handler).forward([])

    assert requests == []


@pytest.mark.asyncio
async def test_forward_pushes_streams(make_event):
    requests = []

    async def handler(request):
        requests.append(request)
        return httpx.Response(204)

    events = [make_event("2023-01-01T00:00:00Z"), make_event("2023-01-02T00:00:00Z", account_id=None)]
    client = _client(handler, loki_url="http://loki:3100/")
    await client.forward(events)
    await client.close()

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://loki:3100/loki/api/v1/push"
    assert request.headers["Content-Type"] == "application/json"

    body = orjson.loads(request.content)
    assert [s["stream"]["account_id"] for s in body["streams"]] == ["acc1", "unknown"]
    assert body["streams"][0]["values"][0][0] == "1672531200000000000"
    assert orjson.loads(body["streams"][1]["values"][0][1])["event_id"] == events[1].id


@pytest.mark.asyncio
async def test_forward_rejected(make_event):
    async def handler(request):
        return httpx.Response(400, text="entry out of order")

    with pytest.raises(SinkRejected) as exc_info:
        await _client(handler).forward([make_event()])

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == "entry out of order"
    assert isinstance(exc_info.value, ForwardError)


@pytest.mark.asyncio
async def test_forward_transport_error(make_event):
    async def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(SinkUnavailable):
        await _client(handler).forward([make_event()])


@pytest.mark.asyncio
async def test_retry_after_failure_succeeds(make_event):
    responses = iter([httpx.Response(503, text="busy"), httpx.Response(204)])
    bodies = []

    async def handler(request):
        bodies.append(request.content)
        return next(responses)

    client = _client(handler)
    events = [make_event()]

    with pytest.raises(SinkRejected):
        await client.forward(events)
    await client.forward(events)

    assert bodies[0] == bodies[1]


@pytest.mark.asyncio
async def test_is_ready():
    async def handler(request):
        assert request.url.path == "/ready"
        return httpx.Response(200, text="ready")

    assert await _client(handler).is_ready() is True


@pytest.mark.asyncio
async def test_is_ready_false_on_error_and_status():
    async def refused(request):
        raise httpx.ConnectError("refused", request=request)

    async def starting(request):
        return httpx.Response(503, text="Ingester not ready")

    assert await _client(refused).is_ready() is False
    assert await _client(starting).is_ready() is False


@pytest.mark.asyncio
async def test_wait_for_ready_polls_until_ready():
    attempts = []

    async def handler(request):
        attempts.append(request)
        return httpx.Response(200 if len(attempts) == 3 else 503)

    assert await _client(handler).wait_for_ready(attempts=5, interval=0) is True
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_wait_for_ready_gives_up():
    attempts = []

    async def handler(request):
        attempts.append(request)
        return httpx.Response(503)

    with pytest.raises(SinkUnavailable):
        await _client(handler).wait_for_ready(attempts=4, interval=0)
    assert len(attempts) == 4


@pytest.mark.asyncio
async def test_push_and_probe_timeouts(make_event):
    timeouts = {}

    async def handler(request):
        timeouts[request.url.path] = request.extensions["timeout"]["read"]
        return httpx.Response(204 if request.method == "POST" else 200)

    client = LokiClient(
        "http://loki:3100",
        push_timeout=7.0,
        probe_timeout=1.5,
        transport=httpx.MockTransport(handler),
    )
    await client.forward([make_event()])
    await client.is_ready()

    assert timeouts == {"/loki/api/v1/push": 7.0, "/ready": 1.5}
