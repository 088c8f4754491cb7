"""Rich-based rendering utilities for pulseboard."""

from __future__ import annotations

from typing import Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pulseboard.models import AggregateMetrics
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import CalendarMetrics
from pulseboard.models import GitHubMetrics
from pulseboard.models import GmailMetrics
from pulseboard.models import MetricSnapshotRecord
from pulseboard.models import PostHogMetrics
from pulseboard.models import StripeMetrics
from pulseboard.models import SupabaseMetrics
from pulseboard.models import VercelMetrics

SPARK_BLOCKS = "▁▂▃▄▅▆▇█"


def format_currency(value: float) -> str:
    """Format a dollar amount, abbreviating thousands and millions."""
    if abs(value) >= 1_000_000:
        return f"${value / 1_000_000:.1f}M"
    if abs(value) >= 10_000:
        return f"${value / 1_000:.1f}k"
    return f"${value:,.2f}"


def format_count(value: int) -> str:
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 10_000:
        return f"{value / 1_000:.1f}k"
    return f"{value:,}"


def format_percent(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:.1f}%"


def render_sparkline(values: list[float]) -> Text:
    """Render values as a one-line block sparkline."""
    text = Text()
    if not values:
        return text

    low, high = min(values), max(values)
    span = high - low
    for value in values:
        index = 0 if span == 0 else int((value - low) / span * (len(SPARK_BLOCKS) - 1))
        text.append(SPARK_BLOCKS[index], style="cyan")
    return text


def summarize_payload(payload: Any) -> str:
    """One-line summary of a provider payload."""
    match payload:
        case StripeMetrics():
            return (
                f"MRR {format_currency(payload.mrr)} · "
                f"{format_count(payload.active_subscriptions)} subscriptions · "
                f"churn {format_percent(payload.churn_rate)}"
            )
        case VercelMetrics():
            return (
                f"{len(payload.deployments)} deployments · "
                f"success {format_percent(payload.success_rate)} · {payload.status}"
            )
        case PostHogMetrics():
            return (
                f"{format_count(payload.unique_users_7d)} users (7d) · "
                f"{format_count(payload.total_events_7d)} events (7d)"
            )
        case SupabaseMetrics():
            return (
                f"{format_count(payload.total_users)} users · "
                f"+{format_count(payload.new_users_7d)} this week"
            )
        case GmailMetrics():
            return f"{payload.unread_count} unread · {payload.primary_unread} primary"
        case GitHubMetrics():
            return (
                f"★ {format_count(payload.total_stars)} · "
                f"{payload.open_issues} issues · {payload.open_prs} PRs"
            )
        case CalendarMetrics():
            return f"{len(payload.events)} upcoming events"
        case _:
            return "data"


def render_snapshot_table(snapshot: AppMetricsSnapshot, name: str | None = None) -> Table:
    """Render one app's provider results as a table."""
    table = Table(title=name or snapshot.app_id, title_justify="left", expand=False)
    table.add_column("Provider", style="bold")
    table.add_column("Status")
    table.add_column("Details")

    if snapshot.error is not None:
        table.add_row("-", Text("unconfigured", style="yellow"), snapshot.error.message)

    for kind, result in snapshot.results.items():
        if result.present:
            status = Text("ok", style="green")
            if result.refreshed:
                status.append(" (refreshed)", style="dim")
            table.add_row(kind, status, summarize_payload(result.payload))
        else:
            message = result.error.describe() if result.error else "no data"
            table.add_row(kind, Text("no data", style="red"), Text(message, style="dim"))

    return table


def render_aggregate_panel(aggregate: AggregateMetrics) -> Panel:
    """Render cross-app totals as a panel."""
    text = Text()
    text.append("Revenue (MRR)     ", style="dim")
    text.append(format_currency(aggregate.total_revenue), style="bold green")
    text.append(f"  across {aggregate.revenue_apps} apps\n", style="dim")
    text.append("Paying customers  ", style="dim")
    text.append(format_count(aggregate.total_paying_customers), style="bold")
    text.append("\nUsers             ", style="dim")
    text.append(format_count(aggregate.total_users), style="bold")
    text.append(f"  across {aggregate.user_apps} apps\n", style="dim")
    text.append("Average churn     ", style="dim")
    churn = aggregate.average_churn_rate if aggregate.churn_apps else None
    text.append(format_percent(churn), style="bold yellow")

    return Panel(text, title=f"All apps ({aggregate.app_count})", border_style="cyan")


def render_history_table(app_id: str, records: list[MetricSnapshotRecord]) -> Table:
    """Render recorded daily snapshots, oldest first."""
    table = Table(title=f"History: {app_id}", title_justify="left")
    table.add_column("Date")
    table.add_column("MRR", justify="right")
    table.add_column("Subscriptions", justify="right")
    table.add_column("Churn", justify="right")
    table.add_column("Deploys", justify="right")
    table.add_column("Users (7d)", justify="right")
    table.add_column("Total users", justify="right")

    for record in records:
        stripe, vercel, posthog, supabase = (
            record.stripe,
            record.vercel,
            record.posthog,
            record.supabase,
        )
        table.add_row(
            record.day.isoformat(),
            format_currency(stripe.mrr) if stripe else "-",
            format_count(stripe.active_subscriptions) if stripe else "-",
            format_percent(stripe.churn_rate) if stripe else "-",
            str(vercel.deployments) if vercel else "-",
            format_count(posthog.unique_users) if posthog else "-",
            format_count(supabase.total_users) if supabase else "-",
        )

    return table
