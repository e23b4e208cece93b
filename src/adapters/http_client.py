"""httpx wrapper.

Single place where `httpx.AsyncClient`s are built, so the OAuth and routing
API calls share timeouts, headers, TLS policy and trace hooks.
"""

from __future__ import annotations

import ssl

import httpx

from core.config import AppSettings
from core.interfaces.streams import TraceSink
from adapters.trace import NullTraceSink, build_event_hooks


def build_verify(settings: AppSettings) -> ssl.SSLContext | bool:
    """TLS verification policy: skip entirely, or trust an extra CA bundle."""

    if settings.skip_tls_verification:
        return False
    if settings.ca_certs is not None:
        context = ssl.create_default_context()
        try:
            context.load_verify_locations(cafile=str(settings.ca_certs))
        except (OSError, ssl.SSLError) as exc:
            raise ValueError(f"Failed to read ca cert file: {exc}") from exc
        return context
    return True


def build_async_client(
    settings: AppSettings | None = None,
    *,
    trace: TraceSink | None = None,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with the client's defaults.

    Redirects are not followed: the OAuth server and the routing API answer
    directly, and a redirect usually means a wrong URL.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=False,
        headers=headers,
        verify=build_verify(settings),
        event_hooks=build_event_hooks(trace or NullTraceSink()),
        transport=transport,
    )
