"""Connection options shared by every command, and their validation."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, AsyncIterator, List, Optional

import httpx
import typer

from adapters.http_client import build_async_client
from adapters.routing_api import RoutingAPIClient
from adapters.trace import NullTraceSink
from adapters.uaa import UAATokenFetcher
from core.config import AppSettings
from core.interfaces.streams import TraceSink

ApiOption = Annotated[
    Optional[str],
    typer.Option("--api", help="Endpoint for the routing-api. (required)", show_default=False),
]
ClientIdOption = Annotated[
    Optional[str],
    typer.Option("--client-id", help="Id of the OAuth client. (required)", show_default=False),
]
ClientSecretOption = Annotated[
    Optional[str],
    typer.Option("--client-secret", help="Secret for OAuth client. (required)", show_default=False),
]
OAuthUrlOption = Annotated[
    Optional[str],
    typer.Option("--oauth-url", help="URL for OAuth client. (required)", show_default=False),
]
SkipTlsOption = Annotated[
    bool,
    typer.Option("--skip-tls-verification", "-k", help="Skip OAuth TLS Verification (optional)"),
]
CaCertsOption = Annotated[
    Optional[Path],
    typer.Option("--ca-certs", help="CA for UAA client (optional)", show_default=False),
]
ExtraArguments = Annotated[
    Optional[List[str]],
    typer.Argument(hidden=True, show_default=False),
]
RoutesArgument = Annotated[
    Optional[List[str]],
    typer.Argument(metavar="ROUTES_JSON", help="Routes as a JSON array.", show_default=False),
]


@dataclass
class ConnectionOptions:
    api: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    oauth_url: str | None = None
    skip_tls_verification: bool = False
    ca_certs: Path | None = None

    def apply(self, settings: AppSettings) -> AppSettings:
        """Settings with the command-line values taking precedence."""

        return settings.merged(
            api=self.api,
            client_id=self.client_id,
            client_secret=self.client_secret,
            oauth_url=self.oauth_url,
            skip_tls_verification=True if self.skip_tls_verification else None,
            ca_certs=self.ca_certs,
        )


def check_flags(settings: AppSettings) -> list[str]:
    issues: list[str] = []

    if not settings.api:
        issues.append("Must provide an API endpoint for the routing-api component.")
    if not settings.client_id:
        issues.append("Must provide the id of an OAuth client.")
    if not settings.client_secret:
        issues.append("Must provide an OAuth secret.")
    if not settings.oauth_url:
        issues.append("Must provide an URL to the OAuth client.")
    elif not _is_absolute_url(settings.oauth_url):
        issues.append("Invalid OAuth client URL")

    return issues


def check_arguments(command: str, arguments: list[str] | None) -> list[str]:
    arguments = arguments or []
    issues: list[str] = []

    if command in ("register", "unregister"):
        if len(arguments) > 1:
            issues.append("Unexpected arguments.")
        elif len(arguments) < 1:
            issues.append("Must provide routes JSON.")
    elif arguments:
        issues.append("Unexpected arguments.")

    return issues


def _is_absolute_url(value: str) -> bool:
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError):
        return False
    return bool(url.scheme and url.host)


@asynccontextmanager
async def open_routing_api(
    settings: AppSettings,
    *,
    trace: TraceSink | None = None,
) -> AsyncIterator[RoutingAPIClient]:
    """Authenticated routing API client; the token is fetched up front."""

    trace = trace or NullTraceSink()
    async with build_async_client(settings, trace=trace) as client:
        tokens = UAATokenFetcher(
            client,
            oauth_url=settings.oauth_url or "",
            client_id=settings.client_id or "",
            client_secret=settings.client_secret or "",
            expiration_buffer_seconds=settings.token_expiration_buffer_seconds,
        )
        await tokens.access_token()
        yield RoutingAPIClient(client, api_url=settings.api or "", tokens=tokens, trace=trace)
