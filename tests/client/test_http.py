"""Tests for the HTTP command channel and the SSE event channel."""

import json
import logging
from collections.abc import AsyncIterator

import anyio
import httpx
import pytest

from tasker.client.http import HttpCommandChannel
from tasker.client.sse import SseEventChannel
from tasker.client.tasker import Tasker
from tasker.types import ChannelEvent, TaskEvent

SSE_HEADERS = {"content-type": "text/event-stream"}


def sse_frame(event: str, data: object) -> bytes:
    payload = data if isinstance(data, str) else json.dumps(data)
    return f"event: {event}\ndata: {payload}\n\n".encode()


@pytest.mark.anyio
async def test_command_channel_posts_json_with_headers():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"accepted": True})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        channel = HttpCommandChannel(client)
        response = await channel.send(
            "http://tasks.test/dispose", {"task_id": "A1", "video": "cat.mp4"}, {"Authorization": "Bearer token"}
        )

    assert response == {"accepted": True}
    [request] = captured
    assert request.method == "POST"
    assert str(request.url) == "http://tasks.test/dispose"
    assert request.headers["Authorization"] == "Bearer token"
    assert json.loads(request.content) == {"task_id": "A1", "video": "cat.mp4"}


@pytest.mark.anyio
async def test_command_channel_decodes_empty_and_text_bodies():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/empty":
            return httpx.Response(204)
        return httpx.Response(200, text="ok")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        channel = HttpCommandChannel(client)
        assert await channel.send("http://tasks.test/empty", {}) is None
        assert await channel.send("http://tasks.test/text", {}) == "ok"


@pytest.mark.anyio
async def test_command_channel_raises_on_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "busy"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        channel = HttpCommandChannel(client)
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await channel.send("http://tasks.test/dispose", {"task_id": "A1"})

    assert exc_info.value.response.status_code == 503


@pytest.mark.anyio
async def test_event_channel_yields_named_events(caplog: pytest.LogCaptureFixture):
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        body = b"".join(
            [
                sse_frame("activate", {"task_id": "T1"}),
                sse_frame("progress", "not json {"),
                sse_frame("progress", 75),
                sse_frame("success", {"task_id": "T1", "data": {"frames": 120}}),
            ]
        )
        return httpx.Response(200, headers=SSE_HEADERS, content=body)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        channel = SseEventChannel(client)
        with caplog.at_level(logging.WARNING, logger="tasker"):
            async with channel.subscribe("http://tasks.test/status", {"task_id": "T1"}) as events:
                received = [event async for event in events]

    assert received == [
        ChannelEvent("activate", {"task_id": "T1"}),
        ChannelEvent("progress", {"data": 75}),
        ChannelEvent("success", {"task_id": "T1", "data": {"frames": 120}}),
    ]
    [request] = captured
    assert request.method == "GET"
    assert request.url.path == "/status"
    assert request.url.params["task_id"] == "T1"
    assert request.headers["accept"] == "text/event-stream"
    assert any("undecodable" in record.getMessage() for record in caplog.records)


@pytest.mark.anyio
async def test_event_channel_raises_when_subscription_is_refused():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        channel = SseEventChannel(client)
        with pytest.raises(httpx.HTTPStatusError):
            async with channel.subscribe("http://tasks.test/status", {}):
                pass  # pragma: no cover


@pytest.mark.anyio
async def test_event_channel_waits_indefinitely_for_events_by_default():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, headers=SSE_HEADERS, content=b"")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        default = SseEventChannel(client, timeout=5)
        bounded = SseEventChannel(client, timeout=5, sse_read_timeout=90)
        for channel in (default, bounded):
            async with channel.subscribe("http://tasks.test/status", {}) as events:
                assert [event async for event in events] == []

    default_request, bounded_request = captured
    assert default_request.extensions["timeout"]["read"] is None
    assert default_request.extensions["timeout"]["connect"] == 5
    assert bounded_request.extensions["timeout"]["read"] == 90


@pytest.mark.anyio
async def test_tasker_over_http_and_sse():
    dispatched = anyio.Event()
    dispatch_bodies: list[dict[str, object]] = []

    async def event_stream() -> AsyncIterator[bytes]:
        yield sse_frame("activate", {"task_id": "A1"})
        await dispatched.wait()
        yield sse_frame("progress", {"task_id": "A1", "data": 50})
        yield sse_frame("success", {"task_id": "A1", "data": "done"})

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path == "/status":
            return httpx.Response(200, headers=SSE_HEADERS, content=event_stream())
        if request.method == "POST" and request.url.path == "/dispose":
            assert request.headers["X-Api-Key"] == "secret"
            dispatch_bodies.append(json.loads(request.content))
            dispatched.set()
            return httpx.Response(202, json={"queued": True})
        return httpx.Response(404)  # pragma: no cover

    progress: list[TaskEvent] = []

    async def on_progress(event: TaskEvent) -> None:
        progress.append(event)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        async with Tasker(base_url="http://tasks.test", http_client=client) as tasker:
            handle = await tasker.dispose({"video": "cat.mp4"}, {"X-Api-Key": "secret"}, on_progress=on_progress)
            with anyio.fail_after(5):
                assert await handle.outcome == "done"

    assert dispatch_bodies == [{"task_id": "A1", "video": "cat.mp4"}]
    assert [event.data for event in progress] == [50]
