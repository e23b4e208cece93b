"""Wire-level event frames and the messages runners exchange with the fan-in."""

from __future__ import annotations

from dataclasses import dataclass

from core.domain.models import RouteProtocol


@dataclass(frozen=True)
class RawEvent:
    """One frame read from an event stream, payload still undecoded."""

    name: str
    data: bytes
    id: str | None = None
    retry: int | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "data": self.data.decode("utf-8", errors="replace"),
            "id": self.id,
            "retry": self.retry,
        }


@dataclass(frozen=True)
class EventDelivered:
    """A translated event, already serialized for display."""

    protocol: RouteProtocol
    text: str


@dataclass(frozen=True)
class SubscriptionTerminated:
    """The terminal error of one subscription. Sent exactly once per runner."""

    protocol: RouteProtocol
    error: BaseException


StreamMessage = EventDelivered | SubscriptionTerminated
