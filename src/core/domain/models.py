"""Domain models (Pydantic v2).

These models describe *what* the routing API talks about: route mappings and
the events announcing changes to them. Field names are the wire contract of
the routing API and must round-trip exactly.

Missing keys fall back to zero values (empty string, 0), the same way the
routing API decodes them; a value of the wrong type is a validation error.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, TypeAdapter
from pydantic.config import ConfigDict


class RouteProtocol(str, Enum):
    """Protocol families that publish their own event stream."""

    HTTP = "http"
    TCP = "tcp"

    def label(self) -> str:
        return self.value.upper()


class Route(BaseModel):
    """An HTTP route: hostname pattern bound to one backend instance."""

    model_config = ConfigDict(frozen=True, extra="ignore", strict=True)

    route: str = Field(
        default="",
        description="Host route pattern, e.g. 'foo.example.com'.",
    )
    port: int = Field(
        default=0,
        description="Backend port.",
    )
    ip: str = Field(
        default="",
        description="Backend IP address.",
    )
    ttl: int = Field(
        default=0,
        ge=0,
        description="Time to live of the registration (seconds).",
    )
    log_guid: str = Field(
        default="",
        description="Log correlation id of the application owning the route.",
    )
    route_service_url: str | None = Field(
        default=None,
        description="Route service the traffic is proxied through, if any.",
    )


class TcpRouteMapping(BaseModel):
    """A TCP port mapping: router group external port bound to a backend."""

    model_config = ConfigDict(frozen=True, extra="ignore", strict=True)

    router_group_guid: str = Field(
        default="",
        description="Router group owning the external port.",
    )
    external_port: int = Field(
        default=0,
        description="Port exposed by the router group.",
    )
    host_ip: str = Field(
        default="",
        description="Backend host IP address.",
    )
    host_port: int = Field(
        default=0,
        description="Backend host port.",
    )


class RouteEvent(BaseModel):
    """A change to an HTTP route, as announced on the events stream."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: str = Field(
        ...,
        alias="Action",
        description="Wire event name, taken verbatim (e.g. 'Upsert', 'Delete').",
    )
    route: Route = Field(
        ...,
        alias="Route",
    )


class TcpRouteEvent(BaseModel):
    """A change to a TCP route mapping."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: str = Field(
        ...,
        alias="Action",
        description="Wire event name, taken verbatim.",
    )
    tcp_route_mapping: TcpRouteMapping = Field(
        ...,
        alias="TcpRouteMapping",
    )


RouteList = TypeAdapter(list[Route])


def dump_routes_json(routes: list[Route]) -> str:
    """Compact JSON array of routes, omitting unset optional fields."""

    return RouteList.dump_json(routes, exclude_none=True).decode("utf-8")


def dump_event_json(event: RouteEvent | TcpRouteEvent) -> str:
    """Compact single-line JSON for a route event (the display format)."""

    return event.model_dump_json(by_alias=True, exclude_none=True)
