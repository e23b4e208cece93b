"""Doctor command: configuration and connectivity diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from cli.context import (
    ApiOption,
    CaCertsOption,
    ClientIdOption,
    ClientSecretOption,
    ConnectionOptions,
    OAuthUrlOption,
    SkipTlsOption,
    check_flags,
    open_routing_api,
)
from cli.ui_components import build_doctor_table
from core.config import AppSettings
from core.domain.errors import RoutingAPIError

_console = Console()

Check = tuple[str, bool, str]


async def _check_connectivity(settings: AppSettings) -> list[Check]:
    checks: list[Check] = []
    try:
        async with open_routing_api(settings) as api:
            checks.append(("OAuth token", True, f"granted by {settings.oauth_url}"))
            try:
                routes = await api.routes()
            except RoutingAPIError as exc:
                checks.append(("Routing API", False, str(exc)))
            else:
                checks.append(("Routing API", True, f"{len(routes)} routes registered"))
    except (RoutingAPIError, ValueError) as exc:
        checks.append(("OAuth token", False, str(exc)))
        checks.append(("Routing API", False, "skipped (no token)"))
    return checks


def run(
    api: ApiOption = None,
    client_id: ClientIdOption = None,
    client_secret: ClientSecretOption = None,
    oauth_url: OAuthUrlOption = None,
    skip_tls_verification: SkipTlsOption = False,
    ca_certs: CaCertsOption = None,
) -> None:
    """Check configuration, token acquisition and routing API reachability."""

    options = ConnectionOptions(api, client_id, client_secret, oauth_url, skip_tls_verification, ca_certs)
    settings = options.apply(AppSettings())

    table = build_doctor_table()

    # Config
    issues = check_flags(settings)
    table.add_row("Configuration", "FAIL" if issues else "OK", " ".join(issues) or "all required settings present")
    table.add_row("TLS", "OK", "verification skipped" if settings.skip_tls_verification else "verification on")
    table.add_row("Trace", "OK", "RTR_TRACE on" if settings.trace == "true" else "off")

    healthy = not issues
    if not issues:
        for name, ok, detail in asyncio.run(_check_connectivity(settings)):
            table.add_row(name, "OK" if ok else "FAIL", detail)
            healthy = healthy and ok

    _console.print(table)

    if not healthy:
        raise typer.Exit(code=1)
