"""Core sync pipeline for pulseboard."""

from pulseboard.core.aggregate import aggregate_metrics
from pulseboard.core.fetch import RefreshContext, fetch_provider
from pulseboard.core.gate import (
    FailureGate,
    FailureGates,
    FailureRecord,
    MAX_FAILURE_RECORDS,
)
from pulseboard.core.history import (
    HistoryError,
    HistoryStore,
    JsonHistoryStore,
    MemoryHistoryStore,
    SnapshotHistory,
    project_snapshot,
    sparkline,
)
from pulseboard.core.http import cleanup, get_http_client, get_timeout_config
from pulseboard.core.orchestrator import FetchOrchestrator, categorize_results
from pulseboard.core.scheduler import JOB_ID, SchedulerState, SyncScheduler
from pulseboard.core.sync import SyncService, create_service

__all__ = [
    # http
    "get_http_client",
    "cleanup",
    "get_timeout_config",
    # gate
    "FailureGate",
    "FailureGates",
    "FailureRecord",
    "MAX_FAILURE_RECORDS",
    # fetch
    "RefreshContext",
    "fetch_provider",
    # orchestrator
    "FetchOrchestrator",
    "categorize_results",
    # aggregate
    "aggregate_metrics",
    # history
    "HistoryError",
    "HistoryStore",
    "MemoryHistoryStore",
    "JsonHistoryStore",
    "SnapshotHistory",
    "project_snapshot",
    "sparkline",
    # scheduler
    "JOB_ID",
    "SchedulerState",
    "SyncScheduler",
    # sync
    "SyncService",
    "create_service",
]
