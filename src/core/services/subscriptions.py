"""Event subscriptions: one runner per protocol, merged by a fan-in coordinator.

The CLI delegates the whole `events` flow to `EventStreamCoordinator`, which
keeps side-effects (printing) behind `StreamHooks` so the flow is testable
without a terminal.

Each runner owns its event source and lives on its own asyncio task. Runners
share one FIFO channel with the coordinator: events and terminal errors are
processed in arrival order, neither kind takes priority. The coordinator stops
once every runner that actually started has reported its terminal error; a
failing subscription never stops a sibling.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Mapping, Sequence

from core.domain.events import EventDelivered, StreamMessage, SubscriptionTerminated
from core.domain.models import RouteProtocol, dump_event_json
from core.interfaces.streams import EventT, TypedEventSource

logger = logging.getLogger(__name__)

Subscriber = Callable[[], Awaitable[TypedEventSource[Any]]]


class StreamState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    DRAINING = "draining"
    DONE = "done"


@dataclass
class StreamHooks:
    """Callbacks for the UI layer."""

    event: Callable[[str], None] | None = None
    terminated: Callable[[RouteProtocol, BaseException], None] | None = None
    subscribe_failed: Callable[[RouteProtocol, BaseException], None] | None = None


@dataclass
class StreamSummary:
    """Outcome of one `events` session."""

    requested: list[RouteProtocol]
    started: list[RouteProtocol] = field(default_factory=list)
    failed_to_start: dict[RouteProtocol, BaseException] = field(default_factory=dict)
    terminations: list[SubscriptionTerminated] = field(default_factory=list)
    events_delivered: int = 0

    @property
    def any_started(self) -> bool:
        return bool(self.started)


def resolve_protocols(http: bool, tcp: bool) -> list[RouteProtocol]:
    """Protocols to stream; asking for neither means both."""

    if not http and not tcp:
        http = tcp = True
    protocols: list[RouteProtocol] = []
    if http:
        protocols.append(RouteProtocol.HTTP)
    if tcp:
        protocols.append(RouteProtocol.TCP)
    return protocols


class SubscriptionRunner(Generic[EventT]):
    """Drives one event source until its first error.

    Every translated event goes to the channel as `EventDelivered`; the first
    error goes as `SubscriptionTerminated` and ends the loop. The runner never
    calls the source again after an error, and closes it on the way out.
    """

    def __init__(
        self,
        source: TypedEventSource[EventT],
        channel: asyncio.Queue[StreamMessage],
        *,
        serialize: Callable[[EventT], str] = dump_event_json,  # type: ignore[assignment]
    ) -> None:
        self._source = source
        self._channel = channel
        self._serialize = serialize
        self.protocol = source.protocol

    async def run(self) -> None:
        try:
            while True:
                try:
                    event = await self._source.next()
                    text = self._serialize(event)
                except Exception as exc:
                    logger.debug("%s subscription terminated: %r", self.protocol.label(), exc)
                    self._channel.put_nowait(SubscriptionTerminated(self.protocol, exc))
                    return
                self._channel.put_nowait(EventDelivered(self.protocol, text))
        finally:
            await self._close_source()

    async def _close_source(self) -> None:
        try:
            await self._source.close()
        except Exception as exc:
            logger.warning("closing %s event source failed: %s", self.protocol.label(), exc)


class EventStreamCoordinator:
    """Fan-in of the per-protocol subscriptions.

    States: IDLE -> STREAMING -> DRAINING -> DONE. A subscriber that fails to
    connect is reported through `hooks.subscribe_failed` and the remaining
    subscriptions keep streaming.
    """

    def __init__(
        self,
        subscribers: Mapping[RouteProtocol, Subscriber],
        *,
        hooks: StreamHooks | None = None,
    ) -> None:
        self._subscribers = dict(subscribers)
        self._hooks = hooks or StreamHooks()
        self._channel: asyncio.Queue[StreamMessage] = asyncio.Queue()
        self._tasks: list[asyncio.Task[None]] = []
        self.state = StreamState.IDLE
        self.expected_terminations = 0
        self.terminated_count = 0

    async def run(self, protocols: Sequence[RouteProtocol]) -> StreamSummary:
        if self.state is not StreamState.IDLE:
            raise RuntimeError(f"coordinator already used (state={self.state.value})")

        summary = StreamSummary(requested=list(protocols))
        try:
            await self._start(summary)
            if self.expected_terminations == 0:
                self.state = StreamState.DONE
                return summary

            self.state = StreamState.STREAMING
            await self._stream(summary)

            self.state = StreamState.DRAINING
            await asyncio.gather(*self._tasks)
            self.state = StreamState.DONE
            return summary
        finally:
            await self._cancel_runners()

    async def _start(self, summary: StreamSummary) -> None:
        protocols = summary.requested
        results = await asyncio.gather(
            *(self._subscribe(protocol) for protocol in protocols),
            return_exceptions=True,
        )
        fatal = next(
            (r for r in results if isinstance(r, BaseException) and not isinstance(r, Exception)),
            None,
        )
        if fatal is not None:
            for result in results:
                if not isinstance(result, BaseException):
                    await self._discard(result)
            raise fatal

        for protocol, result in zip(protocols, results):
            if isinstance(result, BaseException):
                logger.debug("subscribing to %s events failed: %r", protocol.label(), result)
                summary.failed_to_start[protocol] = result
                if self._hooks.subscribe_failed:
                    self._hooks.subscribe_failed(protocol, result)
                continue

            runner = SubscriptionRunner(result, self._channel)
            task = asyncio.create_task(runner.run(), name=f"rtr-{protocol.value}-events")
            self._tasks.append(task)
            summary.started.append(protocol)
            self.expected_terminations += 1
            logger.debug("streaming %s events", protocol.label())

    async def _subscribe(self, protocol: RouteProtocol) -> TypedEventSource[Any]:
        subscriber = self._subscribers.get(protocol)
        if subscriber is None:
            raise LookupError(f"no subscriber configured for {protocol.label()} events")
        return await subscriber()

    @staticmethod
    async def _discard(source: TypedEventSource[Any]) -> None:
        try:
            await source.close()
        except Exception as exc:
            logger.warning("closing %s event source failed: %s", source.protocol.label(), exc)

    async def _stream(self, summary: StreamSummary) -> None:
        while self.terminated_count < self.expected_terminations:
            message = await self._channel.get()
            if isinstance(message, EventDelivered):
                summary.events_delivered += 1
                if self._hooks.event:
                    self._hooks.event(message.text)
                continue

            self.terminated_count += 1
            summary.terminations.append(message)
            if self._hooks.terminated:
                self._hooks.terminated(message.protocol, message.error)

    async def _cancel_runners(self) -> None:
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
