"""Request/response/event tracing (`RTR_TRACE=true`).

Tracing is an injected sink: the null sink is the default and nothing in the
client keeps a global tracer. Everything written through `ConsoleTraceSink`
is sanitized first, so tokens and passwords never reach the terminal.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import httpx
from rich.console import Console

from core.interfaces.streams import TraceSink

PRIVATE_DATA_PLACEHOLDER = "[PRIVATE DATA HIDDEN]"

_AUTHORIZATION_RE = re.compile(r"(?mi)^Authorization: .*")
_PASSWORD_FORM_RE = re.compile(r"password=[^&]*&")
_SECRET_JSON_KEYS = ("access_token", "refresh_token", "token", "password", "oldPassword")


def sanitize(text: str) -> str:
    """Hide credentials in a trace dump."""

    out = _AUTHORIZATION_RE.sub(f"Authorization: {PRIVATE_DATA_PLACEHOLDER}", text)
    out = _PASSWORD_FORM_RE.sub(f"password={PRIVATE_DATA_PLACEHOLDER}&", out)
    for key in _SECRET_JSON_KEYS:
        out = re.sub(rf'"{key}":\s*"[^"]*"', f'"{key}":"{PRIVATE_DATA_PLACEHOLDER}"', out)
    return out


def trace_enabled(value: str | None) -> bool:
    """Only the exact string `true` turns tracing on."""

    return value == "true"


class NullTraceSink:
    def write(self, text: str) -> None:
        return None


class ConsoleTraceSink:
    """Writes sanitized dumps to standard output."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(soft_wrap=True, highlight=False)

    def write(self, text: str) -> None:
        self._console.print(sanitize(text), markup=False, highlight=False, emoji=False)


def build_trace_sink(value: str | None, *, console: Console | None = None) -> TraceSink:
    if trace_enabled(value):
        return ConsoleTraceSink(console)
    return NullTraceSink()


def _stamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _format_headers(headers: httpx.Headers) -> str:
    return "\n".join(f"{key}: {value}" for key, value in headers.items())


def dump_request(request: httpx.Request) -> str:
    body = ""
    try:
        body = request.content.decode("utf-8", errors="replace")
    except httpx.RequestNotRead:
        body = "<streamed body>"
    target = request.url.raw_path.decode("ascii", errors="replace")
    return (
        f"\nREQUEST: [{_stamp()}]\n"
        f"{request.method} {target} HTTP/1.1\n"
        f"Host: {request.url.netloc.decode('ascii', errors='replace')}\n"
        f"{_format_headers(request.headers)}\n\n{body}\n"
    )


def dump_response(response: httpx.Response) -> str:
    return (
        f"\nRESPONSE: [{_stamp()}]\n"
        f"{response.http_version} {response.status_code} {response.reason_phrase}\n"
        f"{_format_headers(response.headers)}\n"
    )


def build_event_hooks(sink: TraceSink) -> dict[str, list]:
    """httpx event hooks dumping every request and response header block.

    Response bodies are not read here: event streams must stay unconsumed.
    """

    if isinstance(sink, NullTraceSink):
        return {}

    async def on_request(request: httpx.Request) -> None:
        sink.write(dump_request(request))

    async def on_response(response: httpx.Response) -> None:
        sink.write(dump_response(response))

    return {"request": [on_request], "response": [on_response]}
