"""Failure gate that skips rate-limited providers for a few passes."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime

from pulseboard.errors.types import ErrorCategory


@dataclass(frozen=True)
class FailureRecord:
    """A record of a single failure."""

    timestamp: datetime
    error_category: ErrorCategory
    message: str


# Failure records kept per gate for diagnostics
MAX_FAILURE_RECORDS = 10


@dataclass
class FailureGate:
    """Tracks failures of one (app, provider) pair across passes.

    A rate-limited failure closes the gate for ``skip_passes`` passes.
    Any other failure is only recorded; the provider is retried on the
    next pass.
    """

    app_id: str
    kind: str
    failures: list[FailureRecord] = field(default_factory=list)
    consecutive_count: int = 0
    skip_remaining: int = 0

    def record_failure(
        self, error_category: ErrorCategory, message: str, skip_passes: int = 0
    ) -> None:
        """Record a failure and update gate state."""
        record = FailureRecord(
            timestamp=datetime.now(UTC), error_category=error_category, message=message
        )
        self.failures = [*self.failures, record][-MAX_FAILURE_RECORDS:]
        self.consecutive_count += 1

        if error_category == ErrorCategory.RATE_LIMITED and skip_passes > 0:
            self.skip_remaining = skip_passes

    def record_success(self) -> None:
        """Record a success and reset consecutive failure count."""
        self.consecutive_count = 0
        self.skip_remaining = 0

    def is_gated(self) -> bool:
        """Check if the provider should be skipped this pass."""
        return self.skip_remaining > 0

    def consume_pass(self) -> bool:
        """Use up one skipped pass.

        Returns:
            True if the provider is skipped this pass
        """
        if not self.is_gated():
            return False
        self.skip_remaining -= 1
        return True

    def recent_failures(self, limit: int = 5) -> list[FailureRecord]:
        """Get recent failure records for diagnostics."""
        return self.failures[-limit:]

    def clear(self) -> None:
        """Clear all failure state."""
        self.failures.clear()
        self.consecutive_count = 0
        self.skip_remaining = 0


class FailureGates:
    """Gates keyed by (app id, provider kind), owned by one orchestrator."""

    def __init__(self) -> None:
        self._gates: dict[tuple[str, str], FailureGate] = {}

    def get(self, app_id: str, kind: str) -> FailureGate:
        """Get or create the gate for an (app, provider) pair."""
        key = (app_id, kind)
        if key not in self._gates:
            self._gates[key] = FailureGate(app_id, kind)
        return self._gates[key]

    def clear(self, app_id: str | None = None) -> None:
        """Forget gate state for one app or all apps."""
        if app_id is None:
            self._gates.clear()
            return
        for key in [k for k in self._gates if k[0] == app_id]:
            del self._gates[key]
