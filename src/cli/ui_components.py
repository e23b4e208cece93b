"""Output helpers for the CLI (Rich).

Everything the commands report goes to stdout untouched: no markup, no
highlighting, no wrapping. Only logging writes to stderr.
"""

from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.table import Table

from core.domain.models import RouteProtocol
from core.services.subscriptions import StreamHooks


def build_console() -> Console:
    """The stdout console used by the commands."""

    return Console(soft_wrap=True, highlight=False)


def print_plain(console: Console, text: str) -> None:
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)


def print_failure(console: Console, prefix: str, error: object) -> None:
    print_plain(console, f"{prefix} {error}")


def print_issues(console: Console, issues: Iterable[str]) -> None:
    """Validation issues, one per line, followed by a blank line."""

    for issue in issues:
        print_plain(console, issue)
    print_plain(console, "")


def build_stream_hooks(out: Console) -> StreamHooks:
    """Hooks printing the `events` stream, events and terminations alike."""

    def on_event(text: str) -> None:
        print_plain(out, text)

    def on_terminated(protocol: RouteProtocol, error: BaseException) -> None:
        print_plain(out, f"Connection closed: {error}")

    def on_subscribe_failed(protocol: RouteProtocol, error: BaseException) -> None:
        print_failure(out, "streaming events failed:", error)

    return StreamHooks(event=on_event, terminated=on_terminated, subscribe_failed=on_subscribe_failed)


def build_doctor_table() -> Table:
    table = Table(title="rtr doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")
    return table
