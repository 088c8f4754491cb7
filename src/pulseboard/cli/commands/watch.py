"""Continuous sync command for pulseboard."""

from __future__ import annotations

import asyncio
import logging
import signal
from datetime import datetime
from pathlib import Path

import msgspec
import typer

from pulseboard.cli.app import app
from pulseboard.cli.app import make_console
from pulseboard.cli.commands.sync import display_pass
from pulseboard.cli.commands.sync import load_service
from pulseboard.config.apps import load_settings
from pulseboard.config.paths import apps_file
from pulseboard.config.settings import get_config
from pulseboard.core.http import cleanup
from pulseboard.core.sync import SyncService
from pulseboard.display.json import output_json
from pulseboard.display.json import sync_report

logger = logging.getLogger(__name__)

# Seconds between checks of the settings file for edits
SETTINGS_POLL_SECONDS = 2.0


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return None


async def watch_settings(
    service: SyncService,
    stop: asyncio.Event,
    path: Path,
    poll_seconds: float = SETTINGS_POLL_SECONDS,
    follow_interval: bool = True,
) -> None:
    """Hand edited settings to the service until ``stop`` is set.

    The service triggers a pass itself when credentials changed. An
    edited ``refreshInterval`` is applied unless ``follow_interval`` is
    False, which is the case when ``--interval`` pinned it.
    """
    last = _mtime(path)
    while not stop.is_set():
        try:
            await asyncio.wait_for(stop.wait(), timeout=poll_seconds)
        except TimeoutError:
            pass
        else:
            return

        current = _mtime(path)
        if current == last:
            continue
        last = current

        try:
            settings = load_settings(path)
        except (msgspec.DecodeError, msgspec.ValidationError, OSError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", path, e)
            continue

        interval = settings.refresh_interval
        if follow_interval and interval and interval != service.scheduler.interval_minutes:
            logger.info("Refresh interval changed to %d minutes", interval)
            service.set_interval(interval)
        service.notify_apps_changed(settings.apps)


@app.command("watch")
async def watch_command(
    ctx: typer.Context,
    interval: int = typer.Option(
        None,
        "--interval",
        "-i",
        min=1,
        help="Minutes between passes (default: from settings)",
    ),
) -> None:
    """Keep syncing on an interval until interrupted."""
    console = make_console(ctx)
    json_mode = ctx.meta.get("json", False)
    verbose = ctx.meta.get("verbose", False)
    quiet = ctx.meta.get("quiet", False)

    service = load_service(console, quiet=quiet)
    if interval:
        service.set_interval(interval)

    def on_pass(svc: SyncService) -> None:
        if json_mode:
            output_json(sync_report(svc.snapshots, svc.aggregate))
            return
        if not quiet:
            console.rule(f"[dim]{datetime.now():%H:%M:%S}[/dim]")
        display_pass(console, svc, verbose=verbose, quiet=quiet)

    service.on_pass = on_pass
    if service.load_cached() and not json_mode and not quiet:
        console.print("[dim]Showing last known values until the first pass completes[/dim]")
        display_pass(console, service, verbose=verbose)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; Ctrl+C cancels the run instead
            pass

    if not quiet and not json_mode:
        console.print(
            f"[dim]Syncing every {service.scheduler.interval_minutes} minutes. "
            "Press Ctrl+C to stop.[/dim]"
        )

    service.start(run_immediately=get_config().sync.run_on_start)
    try:
        await watch_settings(service, stop, apps_file(), follow_interval=not interval)
    finally:
        await service.stop()
        await cleanup()
