"""`rtr`: a CLI for the routing API.

Commands register, unregister and list HTTP routes, and stream route
events. Exit status: 0 on success, 1 on invalid usage, 3 when the
operation itself failed.
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Any, Coroutine, Optional

import typer
from pydantic import ValidationError

from cli import doctor
from cli.context import (
    ApiOption,
    CaCertsOption,
    ClientIdOption,
    ClientSecretOption,
    ConnectionOptions,
    ExtraArguments,
    OAuthUrlOption,
    RoutesArgument,
    SkipTlsOption,
    check_arguments,
    check_flags,
    open_routing_api,
)
from cli.ui_components import build_console, build_stream_hooks, print_failure, print_issues, print_plain
from adapters.trace import build_trace_sink
from core import __version__
from core.config import AppSettings
from core.domain.errors import RoutingAPIError
from core.domain.models import Route, RouteList, RouteProtocol, dump_routes_json
from core.interfaces.streams import TraceSink
from core.log import configure_logging
from core.services.subscriptions import EventStreamCoordinator, StreamSummary, resolve_protocols

EXIT_USAGE = 1
EXIT_FAILURE = 3

ENVIRONMENT_HELP = "ENVIRONMENT VARIABLES: RTR_TRACE=true  Print API request diagnostics to stdout"

app = typer.Typer(
    name="rtr",
    help="A CLI for the Router API server.",
    epilog=ENVIRONMENT_HELP,
    no_args_is_help=True,
    add_completion=False,
)
app.command(name="doctor")(doctor.run)

_out = build_console()


def _version_callback(value: bool) -> None:
    if value:
        print_plain(_out, f"rtr version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging on stderr.")] = False,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = None,
) -> None:
    """A CLI for the Router API server."""

    configure_logging(verbose)


def _prepare(
    ctx: typer.Context,
    command: str,
    options: ConnectionOptions,
    arguments: list[str] | None,
) -> AppSettings:
    """Resolved settings, or exit 1 with every usage issue and the command help."""

    settings = options.apply(AppSettings())
    issues = check_flags(settings) + check_arguments(command, arguments)
    if issues:
        print_issues(_out, issues)
        help_text = ctx.get_help()
        if help_text:
            print_plain(_out, help_text)
        raise typer.Exit(code=EXIT_USAGE)
    return settings


def _run(prefix: str, operation: Coroutine[Any, Any, Any]) -> Any:
    try:
        return asyncio.run(operation)
    except (RoutingAPIError, ValueError) as exc:
        print_failure(_out, prefix, exc)
        raise typer.Exit(code=EXIT_FAILURE) from exc


def _parse_routes(prefix: str, text: str) -> list[Route]:
    try:
        return RouteList.validate_json(text)
    except ValidationError as exc:
        print_failure(_out, prefix, "Invalid json format.")
        raise typer.Exit(code=EXIT_FAILURE) from exc


def _trace(settings: AppSettings) -> TraceSink:
    return build_trace_sink(settings.trace, console=_out)


async def _upsert(settings: AppSettings, routes: list[Route]) -> None:
    async with open_routing_api(settings, trace=_trace(settings)) as api:
        await api.upsert_routes(routes)


async def _delete(settings: AppSettings, routes: list[Route]) -> None:
    async with open_routing_api(settings, trace=_trace(settings)) as api:
        await api.delete_routes(routes)


async def _list(settings: AppSettings) -> list[Route]:
    async with open_routing_api(settings, trace=_trace(settings)) as api:
        return await api.routes()


async def _stream_events(settings: AppSettings, protocols: list[RouteProtocol]) -> StreamSummary:
    async with open_routing_api(settings, trace=_trace(settings)) as api:
        coordinator = EventStreamCoordinator(
            {protocol: api.subscriber(protocol) for protocol in protocols},
            hooks=build_stream_hooks(_out),
        )
        return await coordinator.run(protocols)


@app.command(
    epilog="""Routes must be specified in JSON format, like so:
'[{"route":"foo.com", "port":12345, "ip":"1.2.3.4", "ttl":5, "log_guid":"log-guid"}]'""",
)
def register(
    ctx: typer.Context,
    arguments: RoutesArgument = None,
    api: ApiOption = None,
    client_id: ClientIdOption = None,
    client_secret: ClientSecretOption = None,
    oauth_url: OAuthUrlOption = None,
    skip_tls_verification: SkipTlsOption = False,
    ca_certs: CaCertsOption = None,
) -> None:
    """Registers routes with the routing-api."""

    options = ConnectionOptions(api, client_id, client_secret, oauth_url, skip_tls_verification, ca_certs)
    settings = _prepare(ctx, "register", options, arguments)
    prefix = "route registration failed:"

    desired_routes = (arguments or [])[0]
    routes = _parse_routes(prefix, desired_routes)
    _run(prefix, _upsert(settings, routes))
    print_plain(_out, f"Successfully registered routes: {desired_routes}")


@app.command(
    epilog="""Routes must be specified in JSON format, like so:
'[{"route":"foo.com", "port":12345, "ip":"1.2.3.4"}]'""",
)
def unregister(
    ctx: typer.Context,
    arguments: RoutesArgument = None,
    api: ApiOption = None,
    client_id: ClientIdOption = None,
    client_secret: ClientSecretOption = None,
    oauth_url: OAuthUrlOption = None,
    skip_tls_verification: SkipTlsOption = False,
    ca_certs: CaCertsOption = None,
) -> None:
    """Unregisters routes with the routing-api."""

    options = ConnectionOptions(api, client_id, client_secret, oauth_url, skip_tls_verification, ca_certs)
    settings = _prepare(ctx, "unregister", options, arguments)
    prefix = "route unregistration failed:"

    desired_routes = (arguments or [])[0]
    routes = _parse_routes(prefix, desired_routes)
    _run(prefix, _delete(settings, routes))
    print_plain(_out, f"Successfully unregistered routes: {desired_routes}")


@app.command(name="list")
def list_routes(
    ctx: typer.Context,
    arguments: ExtraArguments = None,
    api: ApiOption = None,
    client_id: ClientIdOption = None,
    client_secret: ClientSecretOption = None,
    oauth_url: OAuthUrlOption = None,
    skip_tls_verification: SkipTlsOption = False,
    ca_certs: CaCertsOption = None,
) -> None:
    """Lists the currently registered routes."""

    options = ConnectionOptions(api, client_id, client_secret, oauth_url, skip_tls_verification, ca_certs)
    settings = _prepare(ctx, "list", options, arguments)

    routes = _run("listing routes failed:", _list(settings))
    print_plain(_out, dump_routes_json(routes))


@app.command()
def events(
    ctx: typer.Context,
    arguments: ExtraArguments = None,
    api: ApiOption = None,
    client_id: ClientIdOption = None,
    client_secret: ClientSecretOption = None,
    oauth_url: OAuthUrlOption = None,
    skip_tls_verification: SkipTlsOption = False,
    ca_certs: CaCertsOption = None,
    http: Annotated[bool, typer.Option("--http", help="Stream HTTP events")] = False,
    tcp: Annotated[bool, typer.Option("--tcp", help="Stream TCP events")] = False,
) -> None:
    """Stream events from the Routing API.

    Without --http or --tcp both streams are followed. The command ends once
    every stream it managed to open has been closed.
    """

    options = ConnectionOptions(api, client_id, client_secret, oauth_url, skip_tls_verification, ca_certs)
    settings = _prepare(ctx, "events", options, arguments)

    summary: StreamSummary = _run("streaming events failed:", _stream_events(settings, resolve_protocols(http, tcp)))
    if not summary.any_started:
        raise typer.Exit(code=EXIT_FAILURE)


def run() -> None:
    app(prog_name="rtr")
