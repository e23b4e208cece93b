"""Contracts of the event subscription pipeline.

Design rules:
- Every method that touches the network is asynchronous.
- A source is finite and non-restartable: once `next` raises, callers stop.
"""

from __future__ import annotations

from typing import Callable, Protocol, TypeVar, runtime_checkable

from core.domain.events import RawEvent
from core.domain.models import RouteProtocol

EventT = TypeVar("EventT")
EventT_co = TypeVar("EventT_co", covariant=True)

Translator = Callable[[RawEvent], EventT]


@runtime_checkable
class RawEventSource(Protocol):
    """Reads wire frames, one at a time, from a single connection."""

    async def next(self) -> RawEvent:
        """Block until one complete frame is available; raise `StreamError` otherwise."""

        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class TypedEventSource(Protocol[EventT_co]):
    """Yields typed route events of one protocol family until a terminal error."""

    protocol: RouteProtocol

    async def next(self) -> EventT_co:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class TraceSink(Protocol):
    """Optional diagnostics output for raw requests, responses and events."""

    def write(self, text: str) -> None:
        ...


@runtime_checkable
class TokenProvider(Protocol):
    """Hands out bearer tokens for the routing API."""

    async def access_token(self) -> str:
        ...
