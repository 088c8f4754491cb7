"""Sync service wiring the pipeline together for the presentation layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from collections.abc import Mapping
from collections.abc import Sequence
from datetime import UTC
from datetime import date
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from pulseboard.config.apps import credential_fingerprint
from pulseboard.config.apps import load_settings
from pulseboard.config.cache import cache_snapshot
from pulseboard.config.cache import load_cached_snapshot
from pulseboard.config.credentials import CredentialStore
from pulseboard.config.paths import credentials_dir
from pulseboard.config.paths import history_dir
from pulseboard.config.settings import DEFAULT_REFRESH_INTERVAL_MINUTES
from pulseboard.config.settings import Config
from pulseboard.config.settings import get_config
from pulseboard.core.aggregate import aggregate_metrics
from pulseboard.core.history import HistoryError
from pulseboard.core.history import JsonHistoryStore
from pulseboard.core.history import SnapshotHistory
from pulseboard.core.history import project_snapshot
from pulseboard.core.history import sparkline
from pulseboard.core.orchestrator import FetchOrchestrator
from pulseboard.core.scheduler import SyncScheduler
from pulseboard.fetchers import create_fetchers
from pulseboard.fetchers import load_entry_point_fetchers
from pulseboard.fetchers.base import ProviderFetcher
from pulseboard.models import AggregateMetrics
from pulseboard.models import App
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import MetricSnapshotRecord
from pulseboard.models import Settings

logger = logging.getLogger(__name__)


class SyncService:
    """Current dashboard state plus the controls that refresh it.

    Holds the ``{app_id: AppMetricsSnapshot}`` map and the aggregate
    derived from it. Each pass replaces an app's snapshot wholesale, so
    readers never see a partly updated app.
    """

    def __init__(
        self,
        apps: Sequence[App],
        orchestrator: FetchOrchestrator,
        history: SnapshotHistory,
        *,
        interval_minutes: int = DEFAULT_REFRESH_INTERVAL_MINUTES,
        cache_snapshots: bool = False,
        scheduler: AsyncIOScheduler | None = None,
        clock: Callable[[], datetime] | None = None,
        on_pass: Callable[[SyncService], None] | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.history = history
        self.cache_snapshots = cache_snapshots
        self.on_pass = on_pass
        self._apps = list(apps)
        self._fingerprint = credential_fingerprint(self._apps)
        self._snapshots: dict[str, AppMetricsSnapshot] = {}
        self._aggregate = aggregate_metrics({})
        self._clock = clock or (lambda: datetime.now(UTC))
        self.scheduler = SyncScheduler(self.run_pass, interval_minutes, scheduler=scheduler)

    @property
    def apps(self) -> list[App]:
        return list(self._apps)

    @property
    def snapshots(self) -> Mapping[str, AppMetricsSnapshot]:
        """Latest snapshot per app id."""
        return dict(self._snapshots)

    @property
    def aggregate(self) -> AggregateMetrics:
        return self._aggregate

    async def run_pass(self) -> dict[str, AppMetricsSnapshot]:
        """Sync every app once and publish the results.

        Returns:
            Dict of app id to the snapshot produced by this pass
        """
        fresh = await self.orchestrator.sync_all(self._apps)

        # Apps may have been removed while the pass was running
        current = {app.id for app in self._apps}
        snapshots = {k: v for k, v in self._snapshots.items() if k in current}
        snapshots.update({k: v for k, v in fresh.items() if k in current})
        self._snapshots = snapshots
        self._aggregate = aggregate_metrics(snapshots)

        today = self._clock().astimezone(UTC).date()
        recorded = 0
        for app_id, snapshot in fresh.items():
            if app_id not in current or not snapshot.has_any_data():
                continue
            self._record_history(app_id, today, snapshot)
            recorded += 1
            if self.cache_snapshots:
                self._cache(app_id, snapshot)

        logger.info("Sync pass complete: %d apps, %d with data", len(fresh), recorded)
        if self.on_pass:
            self.on_pass(self)
        return fresh

    def request_refresh(self) -> bool:
        """Run a pass now, or right after the one in progress."""
        return self.scheduler.trigger("manual")

    def set_interval(self, minutes: int) -> None:
        self.scheduler.set_interval(minutes)

    def query_history(
        self, app_id: str, start: date | None = None, end: date | None = None
    ) -> list[MetricSnapshotRecord]:
        return self.history.query(app_id, start, end)

    def sparkline(self, app_id: str, metric: str, days: int = 7) -> list[float]:
        """Trend values of one metric for an app."""
        return sparkline(self.history.query(app_id), metric, days)

    def notify_apps_changed(self, apps: Sequence[App]) -> bool:
        """Adopt an edited app list.

        Removed apps leave the snapshot map immediately. A pass is
        triggered when any configured credential changed.

        Returns:
            True if a pass was requested
        """
        self._apps = list(apps)
        current = {app.id for app in self._apps}
        if any(app_id not in current for app_id in self._snapshots):
            self._snapshots = {k: v for k, v in self._snapshots.items() if k in current}
            self._aggregate = aggregate_metrics(self._snapshots)

        fingerprint = credential_fingerprint(self._apps)
        if fingerprint == self._fingerprint:
            return False

        self._fingerprint = fingerprint
        logger.info("Credentials changed, requesting a sync pass")
        self.scheduler.trigger("credentials changed")
        return True

    def load_cached(self) -> int:
        """Seed the snapshot map with last-known values from the cache.

        Returns:
            Number of apps restored
        """
        restored = 0
        for app in self._apps:
            if app.id in self._snapshots:
                continue
            snapshot = load_cached_snapshot(app.id)
            if snapshot is not None:
                self._snapshots[app.id] = snapshot
                restored += 1
        if restored:
            self._aggregate = aggregate_metrics(self._snapshots)
        return restored

    def start(self, run_immediately: bool = True) -> None:
        self.scheduler.start(run_immediately=run_immediately)

    async def stop(self) -> None:
        await self.scheduler.stop()

    def _record_history(self, app_id: str, day: date, snapshot: AppMetricsSnapshot) -> None:
        try:
            self.history.append(app_id, day, project_snapshot(snapshot, day))
        except (HistoryError, OSError) as e:
            logger.warning("Could not record history for %s: %s", app_id, e)

    def _cache(self, app_id: str, snapshot: AppMetricsSnapshot) -> None:
        try:
            cache_snapshot(snapshot)
        except (OSError, ValueError) as e:
            logger.warning("Could not cache snapshot for %s: %s", app_id, e)


def create_service(
    config: Config | None = None,
    settings: Settings | None = None,
    fetchers: Mapping[str, ProviderFetcher] | None = None,
) -> SyncService:
    """Build a SyncService from the config file and settings document."""
    config = config or get_config()
    settings = settings if settings is not None else load_settings()

    if fetchers is None:
        load_entry_point_fetchers()
        fetchers = create_fetchers()

    refresher = None
    if config.oauth.google_client_id:
        # Imported here: auth.google depends on core.http
        from pulseboard.auth.google import GoogleTokenRefresher

        refresher = GoogleTokenRefresher(
            config.oauth.google_client_id,
            config.oauth.google_client_secret,
            config.oauth.google_token_url,
        )

    orchestrator = FetchOrchestrator(
        fetchers,
        CredentialStore(credentials_dir(), use_keyring=config.credentials.use_keyring),
        refresher,
        timeout=config.fetch.timeout,
        max_concurrent=config.fetch.max_concurrent,
        rate_limit_skip_passes=config.fetch.rate_limit_skip_passes,
    )
    history = SnapshotHistory(
        JsonHistoryStore(history_dir()),
        retention_days=settings.history_retention_days or config.history.retention_days,
    )
    return SyncService(
        settings.apps,
        orchestrator,
        history,
        interval_minutes=settings.refresh_interval or config.sync.refresh_interval_minutes,
        cache_snapshots=config.sync.cache_snapshots,
    )
