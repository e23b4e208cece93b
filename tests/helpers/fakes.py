from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Iterable

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.errors import StreamClosedError
from core.domain.events import RawEvent

API_URL = "http://api.example.com"
OAUTH_URL = "http://uaa.example.com"
TOKEN = "some-token"

DELETE_ROUTE = {
    "route": "z.a.k",
    "port": 63,
    "ip": "42.42.42.42",
    "ttl": 1,
    "log_guid": "Tomato",
    "route_service_url": "https://route-service-url.com",
}

TCP_MAPPING = {
    "router_group_guid": "rg-1",
    "external_port": 61000,
    "host_ip": "10.0.0.5",
    "host_port": 8080,
}


def sse_frame(name: str, payload: Any) -> bytes:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"event: {name}\ndata: {data}\n\n".encode("utf-8")


def raw_event(name: str, payload: Any) -> RawEvent:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return RawEvent(name=name, data=data.encode("utf-8"))


def sse_response(
    body: bytes | str | AsyncIterator[bytes] = b"",
    *,
    content_type: str = "text/event-stream; charset=utf-8",
) -> httpx.Response:
    """An event-stream response as the routing API would send it."""

    content = body.encode("utf-8") if isinstance(body, str) else body
    return httpx.Response(200, headers={"Content-Type": content_type}, content=content)


def make_settings(**overrides: Any) -> AppSettings:
    values: dict[str, Any] = {
        "api": API_URL,
        "client_id": "some-name",
        "client_secret": "some-secret",
        "oauth_url": OAUTH_URL,
    }
    values.update(overrides)
    return AppSettings(_env_file=None, **values)


def mock_client(handler: Any, settings: AppSettings | None = None, **kwargs: Any) -> httpx.AsyncClient:
    return build_async_client(settings or make_settings(), transport=httpx.MockTransport(handler), **kwargs)


class StaticTokens:
    def __init__(self, token: str = TOKEN) -> None:
        self.token = token
        self.calls = 0

    async def access_token(self) -> str:
        self.calls += 1
        return self.token


class FakeRawSource:
    """Scripted raw source.

    Items are returned in order: a `RawEvent` is yielded, an exception is
    raised, an `asyncio.Event` is awaited before moving on. Once the script is
    exhausted the source either blocks forever (`hold_open`) or ends like a
    closed connection.
    """

    def __init__(self, items: Iterable[object], *, hold_open: bool = False) -> None:
        self._items = list(items)
        self._hold_open = hold_open
        self.reads = 0
        self.closed = False
        self.close_calls = 0

    async def next(self) -> RawEvent:
        self.reads += 1
        while self._items:
            item = self._items.pop(0)
            if isinstance(item, asyncio.Event):
                await item.wait()
                continue
            if isinstance(item, BaseException):
                raise item
            return item  # type: ignore[return-value]
        if self._hold_open:
            await asyncio.Event().wait()
        raise StreamClosedError("event stream ended (EOF)")

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeRoutingAPI:
    """MockTransport handler standing in for both the UAA and the routing API."""

    def __init__(
        self,
        *,
        http_events: bytes | None = b"",
        tcp_events: bytes | None = b"",
        routes: list[dict[str, Any]] | None = None,
        token_status: int = 200,
        routes_status: int = 200,
    ) -> None:
        self.http_events = http_events
        self.tcp_events = tcp_events
        self.routes = routes or []
        self.token_status = token_status
        self.routes_status = routes_status
        self.requests: list[httpx.Request] = []

    def paths(self) -> list[tuple[str, str]]:
        return [(request.method, request.url.path) for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/oauth/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="unauthorized client")
            return httpx.Response(
                200,
                json={"access_token": TOKEN, "token_type": "bearer", "expires_in": 3600},
            )

        if request.headers.get("Authorization") != f"bearer {TOKEN}":
            return httpx.Response(401, json={"name": "UnauthorizedError", "message": "bad token"})

        if path == "/routing/v1/events":
            return self._stream(self.http_events)
        if path == "/routing/v1/tcp_routes/events":
            return self._stream(self.tcp_events)
        if path == "/routing/v1/routes":
            if self.routes_status != 200:
                return httpx.Response(
                    self.routes_status,
                    json={"name": "ProcessRequestError", "message": "cannot process request"},
                )
            if request.method == "GET":
                return httpx.Response(200, json=self.routes)
            return httpx.Response(200)
        return httpx.Response(404)

    @staticmethod
    def _stream(body: bytes | None) -> httpx.Response:
        if body is None:
            return httpx.Response(404, json={"name": "NotFound", "message": "no such event stream"})
        return httpx.Response(
            200,
            headers={"Content-Type": "text/event-stream; charset=utf-8"},
            content=body,
        )
