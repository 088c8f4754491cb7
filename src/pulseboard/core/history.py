"""Day-keyed snapshot history for trend rendering.

Each app keeps at most one record per calendar day. A later pass on the
same day replaces that day's record; earlier days are never rewritten.
"""

from __future__ import annotations

from datetime import UTC
from datetime import date
from datetime import datetime
from datetime import timedelta
from pathlib import Path
from typing import Protocol

import msgspec

from pulseboard.config.settings import DEFAULT_RETENTION_DAYS
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import HistoricalData
from pulseboard.models import MetricSnapshotRecord
from pulseboard.models import PostHogMetrics
from pulseboard.models import PostHogProjection
from pulseboard.models import ProviderKind
from pulseboard.models import StripeMetrics
from pulseboard.models import StripeProjection
from pulseboard.models import SupabaseMetrics
from pulseboard.models import SupabaseProjection
from pulseboard.models import VercelMetrics
from pulseboard.models import VercelProjection
from pulseboard.models import check_path_component


class HistoryError(Exception):
    """History could not be read or the append would rewrite the past."""


class HistoryStore(Protocol):
    """Persistence for one ordered record list per app."""

    def load(self, app_id: str) -> list[MetricSnapshotRecord]: ...

    def save(self, app_id: str, records: list[MetricSnapshotRecord]) -> None: ...


class MemoryHistoryStore:
    """History kept in process memory."""

    def __init__(self) -> None:
        self._records: dict[str, list[MetricSnapshotRecord]] = {}

    def load(self, app_id: str) -> list[MetricSnapshotRecord]:
        return list(self._records.get(app_id, []))

    def save(self, app_id: str, records: list[MetricSnapshotRecord]) -> None:
        self._records[app_id] = list(records)


class JsonHistoryStore:
    """History persisted as one JSON document per app."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path(self, app_id: str) -> Path:
        try:
            return self.directory / f"{check_path_component(app_id)}.json"
        except ValueError as e:
            raise HistoryError(str(e)) from e

    def load(self, app_id: str) -> list[MetricSnapshotRecord]:
        path = self.path(app_id)
        if not path.exists():
            return []
        try:
            data = msgspec.json.decode(path.read_bytes(), type=HistoricalData)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            raise HistoryError(f"Unreadable history for {app_id}: {e}") from e
        return list(data.snapshots)

    def save(self, app_id: str, records: list[MetricSnapshotRecord]) -> None:
        path = self.path(app_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = HistoricalData(
            app_id=app_id, snapshots=records, last_updated=datetime.now(UTC)
        )
        temp_path = path.with_suffix(".tmp")
        temp_path.write_bytes(msgspec.json.encode(data))
        temp_path.replace(path)


class SnapshotHistory:
    """Append-only, day-keyed history of narrow app snapshots."""

    def __init__(
        self,
        store: HistoryStore | None = None,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        self.store = store if store is not None else MemoryHistoryStore()
        self.retention_days = retention_days

    def append(
        self, app_id: str, day: date, projection: MetricSnapshotRecord
    ) -> MetricSnapshotRecord:
        """Record an app's projection for a day.

        A second append for the same day replaces that day's record.

        Raises:
            HistoryError: ``day`` is older than the app's latest record.
        """
        record = msgspec.structs.replace(projection, day=day, app_id=app_id)
        records = self._records(app_id)

        if records and day < records[-1].day:
            raise HistoryError(
                f"Cannot record {day} for {app_id}: history already has {records[-1].day}"
            )
        if records and records[-1].day == day:
            records[-1] = record
        else:
            records.append(record)

        if self.retention_days > 0:
            cutoff = day - timedelta(days=self.retention_days)
            records = [r for r in records if r.day > cutoff]

        self.store.save(app_id, records)
        return record

    def query(
        self, app_id: str, start: date | None = None, end: date | None = None
    ) -> list[MetricSnapshotRecord]:
        """Records between ``start`` and ``end`` inclusive, oldest first.

        Days without a record are simply missing from the result.
        """
        return [
            r
            for r in self._records(app_id)
            if (start is None or r.day >= start) and (end is None or r.day <= end)
        ]

    def latest(self, app_id: str) -> MetricSnapshotRecord | None:
        records = self._records(app_id)
        return records[-1] if records else None

    def _records(self, app_id: str) -> list[MetricSnapshotRecord]:
        # Keyed by day so a hand-edited file cannot yield duplicates
        by_day = {r.day: r for r in self.store.load(app_id)}
        return [by_day[d] for d in sorted(by_day)]


def project_snapshot(snapshot: AppMetricsSnapshot, day: date) -> MetricSnapshotRecord:
    """Build the narrow history projection of an app snapshot.

    Sections whose payload is absent, or not of the expected type, are left
    out of the record.
    """
    stripe = snapshot.payload(ProviderKind.STRIPE)
    vercel = snapshot.payload(ProviderKind.VERCEL)
    posthog = snapshot.payload(ProviderKind.POSTHOG)
    supabase = snapshot.payload(ProviderKind.SUPABASE)

    record = MetricSnapshotRecord(day=day, app_id=snapshot.app_id)
    if isinstance(stripe, StripeMetrics):
        record = msgspec.structs.replace(
            record,
            stripe=StripeProjection(
                mrr=stripe.mrr,
                active_subscriptions=stripe.active_subscriptions,
                churn_rate=stripe.churn_rate,
                arr=stripe.arr,
            ),
        )
    if isinstance(vercel, VercelMetrics):
        record = msgspec.structs.replace(
            record,
            vercel=VercelProjection(
                deployments=len(vercel.deployments),
                success_rate=vercel.success_rate or 0.0,
            ),
        )
    if isinstance(posthog, PostHogMetrics):
        record = msgspec.structs.replace(
            record,
            posthog=PostHogProjection(
                unique_users=posthog.unique_users_7d,
                total_events=posthog.total_events_7d,
            ),
        )
    if isinstance(supabase, SupabaseMetrics):
        record = msgspec.structs.replace(
            record,
            supabase=SupabaseProjection(
                total_users=supabase.total_users,
                api_requests=supabase.api_requests_24h,
            ),
        )
    return record


def sparkline(
    records: list[MetricSnapshotRecord], metric: str, days: int = 7
) -> list[float]:
    """Values of one metric over the last ``days`` records.

    ``metric`` is ``section.field`` (e.g. ``"vercel.deployments"``); a bare
    field name refers to the stripe section. Missing values read as 0.
    """
    section, _, name = metric.rpartition(".")
    section = section or ProviderKind.STRIPE.value

    values = []
    for record in records[-days:] if days > 0 else []:
        projection = getattr(record, section, None)
        value = getattr(projection, name, None) if projection is not None else None
        values.append(value or 0)
    return values
