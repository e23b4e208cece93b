"""Routing API client.

Responsibilities:
- One-shot REST calls: upsert, delete and list HTTP routes.
- Event subscriptions: open the long-lived event stream of one protocol and
  wrap it in a typed `EventSource`.

Every request carries `Authorization: bearer <token>` from the injected
`TokenProvider`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

import httpx
from pydantic import ValidationError

from adapters.sse import SSEEventReader
from core.domain.errors import APIConnectionError, APIResponseError, AuthError, RoutingAPIError
from core.domain.events import RawEvent
from core.domain.models import Route, RouteEvent, RouteList, RouteProtocol, TcpRouteEvent
from core.interfaces.streams import TokenProvider, TraceSink
from core.services.event_source import EventSource
from core.services.translation import translate_route_event, translate_tcp_route_event

logger = logging.getLogger(__name__)

ROUTES_PATH = "/routing/v1/routes"
EVENTS_PATH = "/routing/v1/events"
TCP_EVENTS_PATH = "/routing/v1/tcp_routes/events"


def _error_from_response(response: httpx.Response) -> APIResponseError:
    name: str | None = None
    message = response.text.strip() or response.reason_phrase
    try:
        body = json.loads(response.content)
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        message = body["message"]
        if isinstance(body.get("name"), str):
            name = body["name"]

    error_cls = AuthError if response.status_code in (401, 403) else APIResponseError
    return error_cls(response.status_code, message, name=name)


class RoutingAPIClient:
    """Talks to one routing API endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_url: str,
        tokens: TokenProvider,
        trace: TraceSink | None = None,
        stream_connect_timeout: float | None = None,
    ) -> None:
        self._client = client
        self._base_url = api_url.rstrip("/")
        self._tokens = tokens
        self._trace = trace
        connect = stream_connect_timeout or client.timeout.connect
        # Event streams stay open as long as the server keeps them open.
        self._stream_timeout = httpx.Timeout(connect, read=None)

    async def upsert_routes(self, routes: list[Route]) -> None:
        await self._send_routes("POST", routes)

    async def delete_routes(self, routes: list[Route]) -> None:
        await self._send_routes("DELETE", routes)

    async def routes(self) -> list[Route]:
        response = await self._request("GET", ROUTES_PATH)
        try:
            return RouteList.validate_json(response.content)
        except ValidationError as exc:
            raise RoutingAPIError(f"invalid routes response: {exc}") from exc

    async def subscribe_to_events(self) -> EventSource[RouteEvent]:
        return await self._subscribe(EVENTS_PATH, RouteProtocol.HTTP, translate_route_event)

    async def subscribe_to_tcp_events(self) -> EventSource[TcpRouteEvent]:
        return await self._subscribe(TCP_EVENTS_PATH, RouteProtocol.TCP, translate_tcp_route_event)

    def subscriber(self, protocol: RouteProtocol) -> Callable[[], Awaitable[EventSource[Any]]]:
        """The subscribe coroutine function for one protocol family."""

        if protocol is RouteProtocol.HTTP:
            return self.subscribe_to_events
        return self.subscribe_to_tcp_events

    async def _headers(self) -> dict[str, str]:
        token = await self._tokens.access_token()
        return {"Authorization": f"bearer {token}"}

    async def _send_routes(self, method: str, routes: list[Route]) -> None:
        body = RouteList.dump_json(routes, exclude_none=True)
        await self._request(
            method,
            ROUTES_PATH,
            content=body,
            headers={"Content-Type": "application/json"},
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        all_headers = await self._headers()
        if headers:
            all_headers.update(headers)
        try:
            response = await self._client.request(
                method,
                self._base_url + path,
                content=content,
                headers=all_headers,
            )
        except httpx.HTTPError as exc:
            raise APIConnectionError(str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            raise _error_from_response(response)
        return response

    async def _subscribe(
        self,
        path: str,
        protocol: RouteProtocol,
        translate: Callable[[RawEvent], Any],
    ) -> EventSource[Any]:
        headers = await self._headers()
        headers["Accept"] = "text/event-stream"
        request = self._client.build_request(
            "GET",
            self._base_url + path,
            headers=headers,
            timeout=self._stream_timeout,
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise APIConnectionError(str(exc) or exc.__class__.__name__) from exc

        if response.status_code != 200:
            try:
                await response.aread()
            except httpx.HTTPError as exc:
                raise APIConnectionError(str(exc) or exc.__class__.__name__) from exc
            finally:
                await response.aclose()
            raise _error_from_response(response)

        logger.debug("subscribed to %s events at %s", protocol.label(), path)
        return EventSource(
            SSEEventReader(response),
            translate,
            protocol=protocol,
            trace=self._trace,
        )
