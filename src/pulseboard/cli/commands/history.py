"""History display command for pulseboard."""

from __future__ import annotations

from datetime import UTC
from datetime import datetime
from datetime import timedelta

import typer
from rich.text import Text

from pulseboard.cli.app import ExitCode
from pulseboard.cli.app import app
from pulseboard.cli.app import make_console
from pulseboard.config.paths import history_dir
from pulseboard.config.settings import get_config
from pulseboard.core.history import HistoryError
from pulseboard.core.history import JsonHistoryStore
from pulseboard.core.history import SnapshotHistory
from pulseboard.core.history import sparkline
from pulseboard.display.json import output_json_pretty
from pulseboard.display.rich import render_history_table
from pulseboard.display.rich import render_sparkline


@app.command("history")
def history_command(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., help="App to show history for"),
    days: int = typer.Option(30, "--days", "-d", min=1, help="Days to show"),
    metric: str = typer.Option(
        "mrr",
        "--metric",
        "-m",
        help="Metric for the trend line, e.g. mrr or vercel.deployments",
    ),
) -> None:
    """Show recorded daily snapshots for an app."""
    console = make_console(ctx)
    json_mode = ctx.meta.get("json", False)
    quiet = ctx.meta.get("quiet", False)

    history = SnapshotHistory(
        JsonHistoryStore(history_dir()),
        retention_days=get_config().history.retention_days,
    )
    end = datetime.now(UTC).date()
    start = end - timedelta(days=days - 1)

    try:
        records = history.query(app_id, start, end)
    except HistoryError as e:
        if not quiet:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e

    if json_mode:
        output_json_pretty(records)
        return

    if not records:
        if not quiet:
            console.print(f"[yellow]No history recorded for {app_id} in the last {days} days[/yellow]")
            latest = history.latest(app_id)
            if latest is not None:
                console.print(f"[dim]Last recorded on {latest.day.isoformat()}[/dim]")
        return

    console.print(render_history_table(app_id, records))
    if not quiet:
        trend = Text(f"Trend ({metric}): ", style="dim")
        trend.append_text(render_sparkline(sparkline(records, metric, days)))
        console.print(trend)
