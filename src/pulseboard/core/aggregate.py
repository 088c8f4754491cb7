"""Cross-app aggregation of the current snapshots."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC
from datetime import datetime
from typing import Any

from pulseboard.models import AggregateMetrics
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import ProviderKind


def _number(payload: Any, name: str) -> float | None:
    """Read a numeric field from a payload, None if it is missing."""
    if payload is None:
        return None
    value = getattr(payload, name, None)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


def aggregate_metrics(
    snapshots: Mapping[str, AppMetricsSnapshot],
    now: datetime | None = None,
) -> AggregateMetrics:
    """Derive cross-app totals from the current snapshot map.

    Sums only cover apps whose provider result is present. The churn rate
    is the mean over apps reporting a non-zero churn figure; apps with an
    absent or undefined churn are left out of the denominator rather than
    counted as zero.

    Args:
        snapshots: Dict of app id to the app's latest snapshot

    Returns:
        AggregateMetrics for the whole dashboard
    """
    total_revenue = 0.0
    total_paying = 0
    total_users = 0
    revenue_apps = 0
    user_apps = 0
    churn_rates: list[float] = []

    for snapshot in snapshots.values():
        stripe = snapshot.payload(ProviderKind.STRIPE)
        mrr = _number(stripe, "mrr")
        if mrr is not None:
            total_revenue += mrr
            total_paying += int(_number(stripe, "active_subscriptions") or 0)
            revenue_apps += 1

        churn = _number(stripe, "churn_rate")
        if churn:
            churn_rates.append(churn)

        users = _number(snapshot.payload(ProviderKind.SUPABASE), "total_users")
        if users is not None:
            total_users += int(users)
            user_apps += 1

    average_churn = sum(churn_rates) / len(churn_rates) if churn_rates else 0.0

    return AggregateMetrics(
        total_revenue=total_revenue,
        total_paying_customers=total_paying,
        total_users=total_users,
        average_churn_rate=average_churn,
        app_count=len(snapshots),
        revenue_apps=revenue_apps,
        user_apps=user_apps,
        churn_apps=len(churn_rates),
        computed_at=now or datetime.now(UTC),
    )
