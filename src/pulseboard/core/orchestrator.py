"""Orchestration of provider fetches across apps."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from collections.abc import Mapping
from collections.abc import Sequence
from datetime import UTC
from datetime import datetime

from pulseboard.auth.base import TokenRefresher
from pulseboard.config.credentials import CredentialStore
from pulseboard.config.settings import DEFAULT_MAX_CONCURRENT
from pulseboard.config.settings import DEFAULT_TIMEOUT
from pulseboard.core.fetch import RefreshContext
from pulseboard.core.fetch import fetch_provider
from pulseboard.core.gate import FailureGates
from pulseboard.errors.types import ErrorCategory
from pulseboard.errors.types import PulseError
from pulseboard.fetchers.base import ProviderFetcher
from pulseboard.models import App
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import ProviderConfig
from pulseboard.models import ProviderResult

logger = logging.getLogger(__name__)


class FetchOrchestrator:
    """Fetches every enabled provider of every app.

    Providers of one app run sequentially in declaration order; apps run
    concurrently up to ``max_concurrent``. A failing provider only ever
    produces an absent result for itself.
    """

    def __init__(
        self,
        fetchers: Mapping[str, ProviderFetcher],
        credentials: CredentialStore,
        refresher: TokenRefresher | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        rate_limit_skip_passes: int = 0,
    ) -> None:
        self.fetchers = dict(fetchers)
        self.credentials = credentials
        self.refresher = refresher
        self.timeout = timeout
        self.max_concurrent = max(1, max_concurrent)
        self.rate_limit_skip_passes = rate_limit_skip_passes
        self.gates = FailureGates()

    async def sync_app(self, app: App) -> AppMetricsSnapshot:
        """Fetch all enabled providers of one app into a fresh snapshot."""
        providers = app.enabled_providers()
        if not providers:
            return AppMetricsSnapshot(
                app_id=app.id,
                fetched_at=datetime.now(UTC),
                error=PulseError.of(
                    ErrorCategory.CONFIGURATION,
                    "No providers enabled",
                    app_id=app.id,
                ),
            )

        context = RefreshContext()
        results: dict[str, ProviderResult] = {}
        for config in providers:
            results[config.kind] = await self._sync_provider(app.id, config, context)

        snapshot = AppMetricsSnapshot(
            app_id=app.id, fetched_at=datetime.now(UTC), results=results
        )
        logger.debug(
            "Synced %s: %d present, %d absent",
            app.id,
            len(snapshot.present_kinds()),
            len(snapshot.failed_kinds()),
        )
        return snapshot

    async def sync_all(
        self,
        apps: Sequence[App],
        on_complete: Callable[[AppMetricsSnapshot], None] | None = None,
    ) -> dict[str, AppMetricsSnapshot]:
        """Sync all apps concurrently.

        Args:
            apps: Apps to sync
            on_complete: Optional callback called with each snapshot after sync

        Returns:
            Dict of app id to AppMetricsSnapshot, in app order
        """
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def bounded_sync(app: App) -> AppMetricsSnapshot:
            async with semaphore:
                snapshot = await self.sync_app(app)
            if on_complete:
                on_complete(snapshot)
            return snapshot

        outcomes = await asyncio.gather(
            *(bounded_sync(app) for app in apps), return_exceptions=True
        )

        snapshots: dict[str, AppMetricsSnapshot] = {}
        for app, outcome in zip(apps, outcomes, strict=True):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error("Sync of %s failed: %s", app.id, outcome, exc_info=outcome)
                outcome = AppMetricsSnapshot(
                    app_id=app.id,
                    fetched_at=datetime.now(UTC),
                    error=PulseError.of(ErrorCategory.UNKNOWN, str(outcome), app_id=app.id),
                )
            snapshots[app.id] = outcome
        return snapshots

    async def _sync_provider(
        self, app_id: str, config: ProviderConfig, context: RefreshContext
    ) -> ProviderResult:
        kind = config.kind
        fetcher = self.fetchers.get(kind)
        if fetcher is None:
            return ProviderResult.absent(
                kind,
                PulseError.of(
                    ErrorCategory.CONFIGURATION,
                    f"No fetcher registered for {kind}",
                    provider=kind,
                    app_id=app_id,
                ),
            )

        gate = self.gates.get(app_id, kind)
        if gate.consume_pass():
            return ProviderResult.absent(
                kind,
                PulseError.of(
                    ErrorCategory.RATE_LIMITED,
                    f"Skipped after rate limit ({gate.skip_remaining} more passes)",
                    provider=kind,
                    app_id=app_id,
                ),
            )

        result = await fetch_provider(
            app_id,
            config,
            fetcher,
            self.credentials,
            self.refresher,
            timeout=self.timeout,
            context=context,
        )
        if result.present:
            gate.record_success()
        elif result.error is not None:
            gate.record_failure(
                result.error.category, result.error.message, self.rate_limit_skip_passes
            )
        return result


def categorize_results(snapshots: Mapping[str, AppMetricsSnapshot]) -> dict[str, list]:
    """Categorize app snapshots by outcome.

    Returns dict with keys: 'success', 'partial', 'failure', 'unconfigured'
    """
    categories = defaultdict(list)

    for app_id, snapshot in snapshots.items():
        if snapshot.error is not None and snapshot.error.category == ErrorCategory.CONFIGURATION:
            categories["unconfigured"].append(app_id)
        elif not snapshot.has_any_data():
            categories["failure"].append(app_id)
        elif snapshot.failed_kinds():
            categories["partial"].append(app_id)
        else:
            categories["success"].append(app_id)

    return dict(categories)
