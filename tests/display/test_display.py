"""Tests for display utilities."""

import json
from datetime import UTC
from datetime import date
from datetime import datetime

import pytest
from rich.console import Console

from pulseboard.display.json import decode_json
from pulseboard.display.json import encode_json
from pulseboard.display.json import from_pulse_error
from pulseboard.display.json import output_json
from pulseboard.display.json import output_json_error
from pulseboard.display.json import output_json_pretty
from pulseboard.display.json import sync_report
from pulseboard.display.rich import SPARK_BLOCKS
from pulseboard.display.rich import format_count
from pulseboard.display.rich import format_currency
from pulseboard.display.rich import format_percent
from pulseboard.display.rich import render_aggregate_panel
from pulseboard.display.rich import render_history_table
from pulseboard.display.rich import render_snapshot_table
from pulseboard.display.rich import render_sparkline
from pulseboard.display.rich import summarize_payload
from pulseboard.errors.types import ErrorCategory
from pulseboard.errors.types import PulseError
from pulseboard.models import AggregateMetrics
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import MetricSnapshotRecord
from pulseboard.models import ProviderResult
from pulseboard.models import StripeMetrics
from pulseboard.models import StripeProjection


def render(renderable) -> str:
    console = Console(record=True, width=120, no_color=True)
    console.print(renderable)
    return console.export_text()


@pytest.fixture
def snapshot(stripe_payload):
    return AppMetricsSnapshot(
        app_id="shop",
        fetched_at=datetime(2025, 1, 15, 12, 0, tzinfo=UTC),
        results={
            "stripe": ProviderResult.ok("stripe", stripe_payload, attempts=2, refreshed=True),
            "vercel": ProviderResult.absent(
                "vercel",
                PulseError.of(ErrorCategory.TIMEOUT, "Request timed out", provider="vercel"),
                attempts=1,
            ),
        },
    )


class TestFormatting:
    """Tests for number formatting."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (12.5, "$12.50"),
            (1234.0, "$1,234.00"),
            (12_500.0, "$12.5k"),
            (2_500_000.0, "$2.5M"),
        ],
    )
    def test_format_currency(self, value, expected):
        assert format_currency(value) == expected

    def test_format_count(self):
        assert format_count(999) == "999"
        assert format_count(25_000) == "25.0k"

    def test_format_percent(self):
        assert format_percent(None) == "-"
        assert format_percent(4.25) == "4.2%"

    def test_sparkline(self):
        assert render_sparkline([]).plain == ""
        assert render_sparkline([1, 1]).plain == SPARK_BLOCKS[0] * 2
        line = render_sparkline([0, 5, 10]).plain
        assert line[0] == SPARK_BLOCKS[0]
        assert line[-1] == SPARK_BLOCKS[-1]

    def test_summarize_payload(self, stripe_payload, supabase_payload):
        assert "MRR $100.00" in summarize_payload(stripe_payload)
        assert "250 users" in summarize_payload(supabase_payload)
        assert summarize_payload({"raw": True}) == "data"


class TestRichRendering:
    """Tests for rich tables and panels."""

    def test_snapshot_table(self, snapshot):
        text = render(render_snapshot_table(snapshot, "Shop"))

        assert "Shop" in text
        assert "ok (refreshed)" in text
        assert "timeout: Request timed out" in text

    def test_unconfigured_snapshot(self):
        snapshot = AppMetricsSnapshot(
            app_id="idle",
            fetched_at=datetime.now(UTC),
            error=PulseError.of(ErrorCategory.CONFIGURATION, "No providers enabled"),
        )

        text = render(render_snapshot_table(snapshot))

        assert "unconfigured" in text
        assert "No providers enabled" in text

    def test_aggregate_panel(self):
        aggregate = AggregateMetrics(
            total_revenue=150.0, total_paying_customers=6, app_count=3, revenue_apps=2
        )

        text = render(render_aggregate_panel(aggregate))

        assert "All apps (3)" in text
        assert "$150.00" in text
        # No app reports churn
        assert "Average churn     -" in text

    def test_history_table(self):
        records = [
            MetricSnapshotRecord(
                day=date(2025, 1, 15),
                app_id="shop",
                stripe=StripeProjection(mrr=100.0, active_subscriptions=10),
            )
        ]

        text = render(render_history_table("shop", records))

        assert "2025-01-15" in text
        assert "$100.00" in text


class TestJsonOutput:
    """Tests for JSON output."""

    def test_sync_report(self, snapshot, capsys):
        output_json_pretty(sync_report({"shop": snapshot}, AggregateMetrics(total_revenue=100.0)))

        data = json.loads(capsys.readouterr().out)
        stripe = data["apps"]["shop"]["results"]["stripe"]
        assert stripe["payload"]["mrr"] == 100.0
        assert stripe["payload"]["activeSubscriptions"] == 10
        assert stripe["refreshed"] is True
        assert data["apps"]["shop"]["results"]["vercel"]["error"]["category"] == "timeout"
        assert data["aggregate"]["total_revenue"] == 100.0

    def test_output_json_compact(self, capsysbinary):
        output_json({"a": 1})

        assert capsysbinary.readouterr().out == b'{"a":1}\n'

    def test_error_output(self, capsys):
        output_json_error("broken", category="configuration", severity="fatal")

        data = json.loads(capsys.readouterr().out)
        assert data["error"]["message"] == "broken"
        assert data["error"]["category"] == "configuration"

    def test_from_pulse_error(self):
        error = PulseError.of(ErrorCategory.REVOKED, "gone", provider="gmail", app_id="agenda")

        response = from_pulse_error(error)

        assert response.error.category == "revoked"
        assert response.error.app_id == "agenda"
        assert response.error.remediation

    def test_encode_decode(self):
        encoded = encode_json(StripeMetrics(mrr=1.0, active_subscriptions=1))

        assert decode_json(encoded)["activeSubscriptions"] == 1
        assert decode_json(encoded, StripeMetrics).mrr == 1.0
