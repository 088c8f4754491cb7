"""Tests for the snapshot cache."""

from datetime import UTC
from datetime import datetime
from datetime import timedelta

import pytest

from pulseboard.config.cache import cache_snapshot
from pulseboard.config.cache import load_cached_snapshot
from pulseboard.config.cache import snapshot_path
from pulseboard.errors.types import ErrorCategory
from pulseboard.errors.types import PulseError
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import ProviderResult
from pulseboard.models import StripeMetrics


def make_snapshot(app_id="shop", age=timedelta(0), payload=None):
    results = {}
    if payload is not None:
        results["stripe"] = ProviderResult.ok("stripe", payload)
    results["vercel"] = ProviderResult.absent(
        "vercel", PulseError.of(ErrorCategory.TIMEOUT, "slow", provider="vercel")
    )
    return AppMetricsSnapshot(
        app_id=app_id, fetched_at=datetime.now(UTC) - age, results=results
    )


class TestSnapshotCache:
    """Tests for caching last-known snapshots."""

    def test_round_trip_restores_payload_types(self, stripe_payload):
        cache_snapshot(make_snapshot(payload=stripe_payload))

        restored = load_cached_snapshot("shop")

        assert isinstance(restored.payload("stripe"), StripeMetrics)
        assert restored.payload("stripe") == stripe_payload
        assert restored.errors()["vercel"].category == ErrorCategory.TIMEOUT

    def test_missing(self):
        assert load_cached_snapshot("shop") is None

    def test_corrupt_file(self):
        path = snapshot_path("shop")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{")

        assert load_cached_snapshot("shop") is None


    def test_app_id_cannot_leave_cache_dir(self):
        with pytest.raises(ValueError, match="Invalid app id"):
            snapshot_path("../shop")
