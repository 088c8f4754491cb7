"""Exception classification for structured error handling."""

from __future__ import annotations

import asyncio
import json

import httpx
import msgspec

from pulseboard.errors.types import ErrorCategory
from pulseboard.errors.types import PulseError
from pulseboard.errors.types import classify_http_error


def classify_http_status_error(
    error: httpx.HTTPStatusError,
    provider_id: str | None = None,
) -> PulseError:
    """Classify HTTP status errors into structured errors."""
    status = error.response.status_code
    mapping = classify_http_error(status)

    try:
        body = error.response.json()
        detail = body.get("error", body.get("message", str(status)))
    except (ValueError, AttributeError):
        detail = error.response.text[:200] if error.response.text else str(status)

    return PulseError.of(
        mapping.category,
        f"HTTP {status}: {detail}",
        provider=provider_id,
        details={"status_code": status},
    )


def classify_exception(
    e: BaseException,
    provider_id: str | None = None,
) -> PulseError:
    """Classify any exception into a structured error."""
    from pulseboard.auth.base import RefreshError

    if isinstance(e, RefreshError):
        category = ErrorCategory.REVOKED if e.revoked else ErrorCategory.AUTHENTICATION
        return PulseError.of(category, str(e), provider=provider_id)

    if isinstance(e, httpx.TimeoutException):
        return PulseError.of(ErrorCategory.TIMEOUT, "Request timed out", provider=provider_id)

    if isinstance(e, (httpx.ConnectError, httpx.NetworkError)):
        return PulseError.of(
            ErrorCategory.NETWORK, "Failed to connect to server", provider=provider_id
        )

    if isinstance(e, httpx.HTTPStatusError):
        return classify_http_status_error(e, provider_id)

    if isinstance(e, (asyncio.TimeoutError, TimeoutError)):
        return PulseError.of(
            ErrorCategory.TIMEOUT, "Operation timed out", provider=provider_id
        )

    if isinstance(e, (json.JSONDecodeError, msgspec.DecodeError)):
        return PulseError.of(
            ErrorCategory.MALFORMED,
            "Failed to parse response",
            provider=provider_id,
            details={"error": str(e)},
        )

    if isinstance(e, (KeyError, ValueError, TypeError)):
        return PulseError.of(
            ErrorCategory.MALFORMED,
            f"Invalid response format: {e}",
            provider=provider_id,
        )

    if isinstance(e, OSError):
        return PulseError.of(ErrorCategory.NETWORK, str(e), provider=provider_id)

    return PulseError.of(
        ErrorCategory.UNKNOWN,
        str(e) or type(e).__name__,
        provider=provider_id,
        details={"type": type(e).__name__},
    )
