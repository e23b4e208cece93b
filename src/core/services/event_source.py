"""Typed event source: one raw reader plus one translator.

A single generic class serves both protocol families; only the translation
function differs between the HTTP and TCP streams.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Generic

from core.domain.events import RawEvent
from core.domain.models import RouteProtocol
from core.interfaces.streams import EventT, RawEventSource, TraceSink, Translator

logger = logging.getLogger(__name__)


class EventSource(Generic[EventT]):
    """Pull-based sequence of typed events read from one connection.

    Each call to `next` consumes exactly one wire frame. The first error (from
    the reader or the translator) is terminal: callers must not call `next`
    again afterwards.
    """

    def __init__(
        self,
        raw_source: RawEventSource,
        translate: Translator[EventT],
        *,
        protocol: RouteProtocol,
        trace: TraceSink | None = None,
    ) -> None:
        self._raw = raw_source
        self._translate = translate
        self._trace = trace
        self.protocol = protocol

    async def next(self) -> EventT:
        raw = await self._raw.next()
        self._dump(raw)
        return self._translate(raw)

    async def close(self) -> None:
        logger.debug("closing %s event source", self.protocol.label())
        await self._raw.close()

    def _dump(self, raw: RawEvent) -> None:
        if self._trace is None:
            return
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        self._trace.write(f"\nEVENT: [{stamp}]\n{json.dumps(raw.as_dict())}\n")
