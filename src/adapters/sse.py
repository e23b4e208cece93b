"""Server-sent events reader over an httpx streaming response.

Framing (text/event-stream) is decoded by `httpx-sse`; this module turns its
async iterator into a pull-based `next()`/`close()` reader and maps every
failure onto a `StreamError`. Frames that carry no `data` (keep-alives,
`retry`-only frames) are not handed out.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator

import httpx
from httpx_sse import EventSource, ServerSentEvent, SSEError

from core.domain.errors import FramingError, StreamClosedError, StreamConnectionError
from core.domain.events import RawEvent

logger = logging.getLogger(__name__)


class SSEEventReader:
    """Reads one event at a time from a single event stream.

    Not safe for concurrent `next` calls: exactly one reader task per
    connection. Every error is terminal; there is no reconnect.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._events: AsyncGenerator[ServerSentEvent, None] = EventSource(response).aiter_sse()
        self._closed = False
        self._reading = False
        self.last_event_id: str | None = None
        self.retry: int | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def next(self) -> RawEvent:
        while True:
            sse = await self._read()
            if sse.retry is not None:
                self.retry = sse.retry
            if sse.id:
                self.last_event_id = sse.id
            if not sse.data:
                logger.debug("skipping %r frame without data", sse.event)
                continue
            return RawEvent(
                name=sse.event,
                data=sse.data.encode("utf-8"),
                id=sse.id or None,
                retry=sse.retry,
            )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            # An in-flight read finalizes the generator itself once the response is gone.
            if not self._reading:
                await self._events.aclose()
        finally:
            await self._response.aclose()

    async def _read(self) -> ServerSentEvent:
        if self._closed:
            raise StreamClosedError("event stream is closed")
        self._reading = True
        try:
            return await anext(self._events)
        except StopAsyncIteration:
            raise StreamClosedError("event stream ended (EOF)") from None
        except SSEError as exc:
            raise FramingError(str(exc)) from exc
        except (httpx.TransportError, httpx.StreamError) as exc:
            if self._closed:
                raise StreamClosedError("event stream is closed") from exc
            raise StreamConnectionError(str(exc) or exc.__class__.__name__) from exc
        finally:
            self._reading = False
