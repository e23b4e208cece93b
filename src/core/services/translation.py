"""Translation of raw wire frames into typed route events.

Both translators are pure functions: no I/O, no shared state. The event
name is copied verbatim into `action`; the routing API may add actions
without this client knowing about them.
"""

from __future__ import annotations

from pydantic import ValidationError

from core.domain.errors import DecodeError
from core.domain.events import RawEvent
from core.domain.models import Route, RouteEvent, TcpRouteEvent, TcpRouteMapping


def translate_route_event(raw: RawEvent) -> RouteEvent:
    """Decode an HTTP route event."""

    try:
        route = Route.model_validate_json(raw.data)
    except ValidationError as exc:
        raise DecodeError(f"cannot decode {raw.name!r} event as a route: {exc}") from exc
    return RouteEvent(action=raw.name, route=route)


def translate_tcp_route_event(raw: RawEvent) -> TcpRouteEvent:
    """Decode a TCP route mapping event."""

    try:
        mapping = TcpRouteMapping.model_validate_json(raw.data)
    except ValidationError as exc:
        raise DecodeError(
            f"cannot decode {raw.name!r} event as a tcp route mapping: {exc}"
        ) from exc
    return TcpRouteEvent(action=raw.name, tcp_route_mapping=mapping)
