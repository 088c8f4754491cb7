"""Error types and classifications."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

import msgspec


class ErrorCategory(StrEnum):
    """Error categories for handling decisions.

    Fetchers report failures with one of these categories. Only
    ``EXPIRED`` sends a provider down the token refresh path.
    """

    EXPIRED = "expired"
    REVOKED = "revoked"
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    TIMEOUT = "timeout"
    PROVIDER = "provider"
    MALFORMED = "malformed"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(StrEnum):
    """Error severity levels."""

    FATAL = "fatal"  # needs the user to reconnect or reconfigure
    RECOVERABLE = "recoverable"
    TRANSIENT = "transient"  # expected to clear up by the next pass
    WARNING = "warning"


CATEGORY_SEVERITY: dict[ErrorCategory, ErrorSeverity] = {
    ErrorCategory.EXPIRED: ErrorSeverity.RECOVERABLE,
    ErrorCategory.REVOKED: ErrorSeverity.FATAL,
    ErrorCategory.AUTHENTICATION: ErrorSeverity.FATAL,
    ErrorCategory.RATE_LIMITED: ErrorSeverity.TRANSIENT,
    ErrorCategory.NETWORK: ErrorSeverity.TRANSIENT,
    ErrorCategory.TIMEOUT: ErrorSeverity.TRANSIENT,
    ErrorCategory.PROVIDER: ErrorSeverity.TRANSIENT,
    ErrorCategory.MALFORMED: ErrorSeverity.RECOVERABLE,
    ErrorCategory.CONFIGURATION: ErrorSeverity.FATAL,
    ErrorCategory.UNKNOWN: ErrorSeverity.RECOVERABLE,
}


def severity_for(category: ErrorCategory) -> ErrorSeverity:
    """Return the default severity for an error category."""
    return CATEGORY_SEVERITY.get(category, ErrorSeverity.RECOVERABLE)


class PulseError(msgspec.Struct, frozen=True):
    """Structured error with category and remediation."""

    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    provider: str | None = None
    app_id: str | None = None
    remediation: str | None = None
    details: dict | None = None
    timestamp: datetime = msgspec.field(
        default_factory=lambda: datetime.now().astimezone()
    )

    @classmethod
    def of(
        cls,
        category: ErrorCategory,
        message: str,
        *,
        provider: str | None = None,
        app_id: str | None = None,
        details: dict | None = None,
    ) -> PulseError:
        """Build an error with default severity and remediation."""
        from pulseboard.errors.messages import get_remediation

        return cls(
            message=message,
            category=category,
            severity=severity_for(category),
            provider=provider,
            app_id=app_id,
            remediation=get_remediation(category, provider),
            details=details,
        )

    def describe(self) -> str:
        """One-line description for logs and tables."""
        return f"{self.category.value}: {self.message}"


class HTTPErrorMapping(msgspec.Struct, frozen=True):
    """How to classify an HTTP status code."""

    category: ErrorCategory
    severity: ErrorSeverity


HTTP_ERROR_MAPPINGS: dict[int, HTTPErrorMapping] = {
    400: HTTPErrorMapping(
        category=ErrorCategory.MALFORMED,
        severity=ErrorSeverity.RECOVERABLE,
    ),
    401: HTTPErrorMapping(
        category=ErrorCategory.AUTHENTICATION,
        severity=ErrorSeverity.FATAL,
    ),
    403: HTTPErrorMapping(
        category=ErrorCategory.AUTHENTICATION,
        severity=ErrorSeverity.FATAL,
    ),
    404: HTTPErrorMapping(
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.FATAL,
    ),
    408: HTTPErrorMapping(
        category=ErrorCategory.TIMEOUT,
        severity=ErrorSeverity.TRANSIENT,
    ),
    429: HTTPErrorMapping(
        category=ErrorCategory.RATE_LIMITED,
        severity=ErrorSeverity.TRANSIENT,
    ),
}


def classify_http_error(status_code: int) -> HTTPErrorMapping:
    """Classify an HTTP error by status code."""
    if status_code in HTTP_ERROR_MAPPINGS:
        return HTTP_ERROR_MAPPINGS[status_code]

    if 500 <= status_code < 600:
        return HTTPErrorMapping(
            category=ErrorCategory.PROVIDER,
            severity=ErrorSeverity.TRANSIENT,
        )
    return HTTPErrorMapping(
        category=ErrorCategory.UNKNOWN,
        severity=ErrorSeverity.RECOVERABLE,
    )
