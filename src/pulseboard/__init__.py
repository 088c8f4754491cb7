"""pulseboard: Keep a multi-app metrics dashboard in sync."""

from __future__ import annotations

__version__ = "0.1.0"

from pulseboard.models import AggregateMetrics
from pulseboard.models import App
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import MetricSnapshotRecord
from pulseboard.models import ProviderConfig
from pulseboard.models import ProviderKind
from pulseboard.models import ProviderResult
from pulseboard.models import Settings

__all__ = [
    "__version__",
    "ProviderKind",
    "ProviderConfig",
    "App",
    "Settings",
    "ProviderResult",
    "AppMetricsSnapshot",
    "MetricSnapshotRecord",
    "AggregateMetrics",
]


def main() -> None:
    """Entry point for the pulseboard CLI."""
    from pulseboard.cli.app import run_app

    run_app()
