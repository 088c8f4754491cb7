"""One-shot sync command for pulseboard."""

from __future__ import annotations

import time
from collections.abc import Iterable
from collections.abc import Mapping

import msgspec
import typer
from rich.console import Console

from pulseboard.cli.app import ExitCode
from pulseboard.cli.app import app
from pulseboard.cli.app import make_console
from pulseboard.config.apps import load_settings
from pulseboard.config.paths import apps_file
from pulseboard.core.http import cleanup
from pulseboard.core.orchestrator import categorize_results
from pulseboard.core.sync import SyncService
from pulseboard.core.sync import create_service
from pulseboard.display.json import output_json_pretty
from pulseboard.display.json import sync_report
from pulseboard.display.rich import render_aggregate_panel
from pulseboard.display.rich import render_snapshot_table
from pulseboard.errors.types import ErrorCategory
from pulseboard.models import AppMetricsSnapshot

AUTH_CATEGORIES = frozenset(
    {ErrorCategory.EXPIRED, ErrorCategory.REVOKED, ErrorCategory.AUTHENTICATION}
)
NETWORK_CATEGORIES = frozenset({ErrorCategory.NETWORK, ErrorCategory.TIMEOUT})


def load_service(console: Console, app_id: str | None = None, quiet: bool = False) -> SyncService:
    """Build the sync service, optionally narrowed to one app.

    Exits with CONFIG_ERROR when the settings file is unreadable or no
    matching app is configured.
    """
    try:
        settings = load_settings()
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        if not quiet:
            console.print(f"[red]Invalid settings file {apps_file()}:[/red] {e}")
        raise typer.Exit(ExitCode.CONFIG_ERROR) from e

    if app_id is not None:
        apps = [app for app in settings.apps if app.id == app_id]
        if not apps:
            if not quiet:
                known = ", ".join(a.id for a in settings.apps) or "none"
                console.print(f"[red]Unknown app:[/red] {app_id} (configured: {known})")
            raise typer.Exit(ExitCode.CONFIG_ERROR)
        settings = msgspec.structs.replace(settings, apps=apps)

    if not settings.apps:
        if not quiet:
            console.print(f"[yellow]No apps configured.[/yellow] Add apps to {apps_file()}")
        raise typer.Exit(ExitCode.CONFIG_ERROR)

    return create_service(settings=settings)


def exit_code_for(snapshots: Mapping[str, AppMetricsSnapshot]) -> ExitCode:
    """Map a pass outcome to the process exit code."""
    categories = categorize_results(snapshots)
    if not categories.get("success") and not categories.get("partial"):
        if categories.get("unconfigured") and not categories.get("failure"):
            return ExitCode.CONFIG_ERROR
        failed = categories.get("failure", [])
        return _failure_exit_code(snapshots[app_id] for app_id in failed)
    if categories.get("partial") or categories.get("failure"):
        return ExitCode.PARTIAL_FAILURE
    return ExitCode.SUCCESS


def _failure_exit_code(snapshots: Iterable[AppMetricsSnapshot]) -> ExitCode:
    """Narrow a total failure to auth or network when every provider agrees."""
    failed = {
        error.category for snapshot in snapshots for error in snapshot.errors().values()
    }
    if failed and failed <= AUTH_CATEGORIES:
        return ExitCode.AUTH_ERROR
    if failed and failed <= NETWORK_CATEGORIES:
        return ExitCode.NETWORK_ERROR
    return ExitCode.GENERAL_ERROR


def display_pass(
    console: Console,
    service: SyncService,
    verbose: bool = False,
    quiet: bool = False,
    duration_ms: float | None = None,
) -> None:
    """Print every app's snapshot followed by the aggregate."""
    names = {app.id: app.name for app in service.apps}
    snapshots = service.snapshots

    if quiet:
        for app_id, snapshot in snapshots.items():
            failed = snapshot.failed_kinds()
            if failed:
                console.print(f"{app_id}: no data from {', '.join(failed)}")
        return

    for app_id, snapshot in snapshots.items():
        console.print(render_snapshot_table(snapshot, names.get(app_id)))
        if verbose:
            for kind, error in snapshot.errors().items():
                if error.remediation:
                    console.print(f"  [dim]{kind}: {error.remediation}[/dim]")
    console.print(render_aggregate_panel(service.aggregate))

    if verbose and duration_ms is not None:
        console.print(f"[dim]Synced {len(snapshots)} apps in {duration_ms:.0f}ms[/dim]")


@app.command("sync")
async def sync_command(
    ctx: typer.Context,
    app_id: str = typer.Argument(
        None,
        help="App to sync (default: all configured apps)",
    ),
) -> None:
    """Run one sync pass and show the results."""
    console = make_console(ctx)
    json_mode = ctx.meta.get("json", False)
    verbose = ctx.meta.get("verbose", False)
    quiet = ctx.meta.get("quiet", False)

    service = load_service(console, app_id, quiet=quiet)

    try:
        start_time = time.monotonic()
        snapshots = await service.run_pass()
        duration_ms = (time.monotonic() - start_time) * 1000
    finally:
        await cleanup()

    if json_mode:
        output_json_pretty(sync_report(service.snapshots, service.aggregate, duration_ms))
    else:
        display_pass(console, service, verbose=verbose, quiet=quiet, duration_ms=duration_ms)

    code = exit_code_for(snapshots)
    if code != ExitCode.SUCCESS:
        raise typer.Exit(code)
