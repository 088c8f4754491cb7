"""JSON output utilities for pulseboard."""

from __future__ import annotations

import json
import sys
from collections.abc import Mapping
from datetime import UTC
from datetime import datetime

import msgspec

from pulseboard.errors.types import PulseError
from pulseboard.models import AggregateMetrics
from pulseboard.models import AppMetricsSnapshot

__all__ = [
    "ErrorResponse",
    "ErrorData",
    "SyncReport",
    "create_error_response",
    "output_json",
    "output_json_pretty",
    "output_json_error",
    "from_pulse_error",
    "sync_report",
    "encode_json",
    "decode_json",
]


class ErrorData(msgspec.Struct, frozen=True, omit_defaults=True):
    """Error data with category, severity, and remediation."""

    message: str
    category: str
    severity: str
    provider: str | None = None
    app_id: str | None = None
    remediation: str | None = None
    details: dict | None = None
    timestamp: str = msgspec.field(
        default_factory=lambda: datetime.now(UTC).isoformat()
    )


class ErrorResponse(msgspec.Struct, frozen=True):
    """Structured error response for JSON output."""

    error: ErrorData


class SyncReport(msgspec.Struct, frozen=True):
    """JSON document printed after a sync pass."""

    apps: dict[str, AppMetricsSnapshot]
    aggregate: AggregateMetrics
    duration_ms: float | None = None


def create_error_response(
    message: str,
    category: str,
    severity: str,
    provider: str | None = None,
    remediation: str | None = None,
    details: dict | None = None,
) -> ErrorResponse:
    """Create an ErrorResponse from individual fields."""
    return ErrorResponse(
        error=ErrorData(
            message=message,
            category=category,
            severity=severity,
            provider=provider,
            remediation=remediation,
            details=details,
        )
    )


def from_pulse_error(error: PulseError) -> ErrorResponse:
    """Create an ErrorResponse from a PulseError."""
    return ErrorResponse(
        error=ErrorData(
            message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            provider=error.provider,
            app_id=error.app_id,
            remediation=error.remediation,
            details=error.details,
            timestamp=error.timestamp.isoformat(),
        )
    )


def sync_report(
    snapshots: Mapping[str, AppMetricsSnapshot],
    aggregate: AggregateMetrics,
    duration_ms: float | None = None,
) -> SyncReport:
    return SyncReport(apps=dict(snapshots), aggregate=aggregate, duration_ms=duration_ms)


def output_json(data: object) -> None:
    """Output data as compact JSON to stdout.

    Args:
        data: Any msgspec-serializable object (Struct, dict, list, etc.)
    """
    sys.stdout.buffer.write(msgspec.json.encode(data))
    sys.stdout.buffer.write(b"\n")
    sys.stdout.flush()


def output_json_pretty(data: object, indent: int = 2) -> None:
    """Output data as pretty-printed JSON to stdout."""
    # Round-trip through msgspec so structs and datetimes become plain JSON types
    python_obj = msgspec.json.decode(msgspec.json.encode(data))
    sys.stdout.write(json.dumps(python_obj, indent=indent))
    sys.stdout.write("\n")


def output_json_error(
    message: str,
    category: str = "unknown",
    severity: str = "recoverable",
    provider: str | None = None,
    remediation: str | None = None,
    details: dict | None = None,
    indent: int = 2,
) -> None:
    """Output an error in standardized JSON format."""
    output_json_pretty(
        create_error_response(
            message=message,
            category=category,
            severity=severity,
            provider=provider,
            remediation=remediation,
            details=details,
        ),
        indent=indent,
    )


def encode_json(data: object) -> bytes:
    return msgspec.json.encode(data)


def decode_json(json_bytes: bytes, type_hint: type | None = None) -> object:
    """Decode JSON bytes, validating against ``type_hint`` when given."""
    if type_hint:
        return msgspec.json.decode(json_bytes, type=type_hint)
    return msgspec.json.decode(json_bytes)
