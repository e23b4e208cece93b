from __future__ import annotations

import asyncio

import httpx
import pytest

from adapters.sse import SSEEventReader
from core.domain.errors import (
    APIConnectionError,
    FramingError,
    StreamClosedError,
    StreamConnectionError,
)
from core.domain.events import RawEvent
from tests.helpers.fakes import sse_frame, sse_response


async def _read_all(reader: SSEEventReader) -> tuple[list[RawEvent], Exception]:
    events: list[RawEvent] = []
    while True:
        try:
            events.append(await reader.next())
        except Exception as exc:
            return events, exc


@pytest.mark.asyncio
async def test_reads_one_named_frame():
    reader = SSEEventReader(sse_response('id: 7\nevent: Delete\ndata: {"route":"z.a.k"}\n\n'))

    event = await asyncio.wait_for(reader.next(), timeout=1.0)

    assert event == RawEvent(name="Delete", data=b'{"route":"z.a.k"}', id="7")
    assert reader.last_event_id == "7"


@pytest.mark.asyncio
async def test_multiline_data_and_comments():
    reader = SSEEventReader(sse_response(": keep-alive\ndata:first\ndata:  second\n\n"))

    event = await asyncio.wait_for(reader.next(), timeout=1.0)

    assert event.name == "message"
    assert event.data == b"first\n second"


@pytest.mark.asyncio
async def test_frames_without_data_are_not_handed_out():
    reader = SSEEventReader(sse_response("event: Upsert\n\nretry: 3000\n\nevent: Delete\ndata: {}\n\n"))

    event = await asyncio.wait_for(reader.next(), timeout=1.0)

    assert event.name == "Delete"
    assert event.retry is None
    assert reader.retry == 3000


@pytest.mark.asyncio
async def test_unknown_fields_and_invalid_retry_are_ignored():
    reader = SSEEventReader(sse_response("foo: bar\nretry: soon\nevent: Upsert\ndata: {}\n\n"))

    event = await asyncio.wait_for(reader.next(), timeout=1.0)

    assert event.name == "Upsert"
    assert reader.retry is None


@pytest.mark.asyncio
async def test_n_frames_then_exactly_one_terminal_error():
    body = "".join(f'event: Upsert\ndata: {{"port": {i}}}\n\n' for i in range(3))
    reader = SSEEventReader(sse_response(body))

    events, error = await asyncio.wait_for(_read_all(reader), timeout=1.0)

    assert [e.data for e in events] == [b'{"port": 0}', b'{"port": 1}', b'{"port": 2}']
    assert isinstance(error, StreamClosedError)


@pytest.mark.asyncio
async def test_empty_stream_is_a_connection_error():
    reader = SSEEventReader(sse_response())

    with pytest.raises(StreamClosedError, match="EOF") as excinfo:
        await asyncio.wait_for(reader.next(), timeout=1.0)

    assert isinstance(excinfo.value, APIConnectionError)


@pytest.mark.asyncio
async def test_unfinished_frame_at_eof_is_dropped():
    reader = SSEEventReader(sse_response("event: Upsert\ndata: {}"))

    with pytest.raises(StreamClosedError):
        await asyncio.wait_for(reader.next(), timeout=1.0)


@pytest.mark.asyncio
async def test_wrong_content_type_is_a_framing_error():
    reader = SSEEventReader(sse_response("data: {}\n\n", content_type="application/json"))

    with pytest.raises(FramingError, match="text/event-stream"):
        await asyncio.wait_for(reader.next(), timeout=1.0)


@pytest.mark.asyncio
async def test_transport_failure_keeps_the_cause():
    async def broken():
        yield b"event: Upsert\n"
        raise httpx.ReadError("connection reset by peer")

    reader = SSEEventReader(sse_response(broken()))

    with pytest.raises(StreamConnectionError) as excinfo:
        await asyncio.wait_for(reader.next(), timeout=1.0)

    assert isinstance(excinfo.value, APIConnectionError)
    assert isinstance(excinfo.value.__cause__, httpx.ReadError)


@pytest.mark.asyncio
async def test_next_after_close_fails_deterministically():
    response = sse_response("data: {}\n\n")
    reader = SSEEventReader(response)

    await reader.close()
    await reader.close()

    with pytest.raises(StreamClosedError, match="closed"):
        await asyncio.wait_for(reader.next(), timeout=1.0)
    assert reader.closed
    assert response.is_closed


@pytest.mark.asyncio
async def test_reads_frames_from_an_httpx_streaming_response():
    body = sse_frame("Upsert", {"route": "a.com"}).replace(b"\n", b"\r\n") + sse_frame("Delete", {"route": "b.com"})

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=body)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        request = client.build_request("GET", "http://api.example.com/routing/v1/events")
        response = await client.send(request, stream=True)
        reader = SSEEventReader(response)

        events, error = await asyncio.wait_for(_read_all(reader), timeout=1.0)
        await reader.close()

    assert [(e.name, e.data) for e in events] == [
        ("Upsert", b'{"route": "a.com"}'),
        ("Delete", b'{"route": "b.com"}'),
    ]
    assert isinstance(error, StreamClosedError)
    assert response.is_closed
