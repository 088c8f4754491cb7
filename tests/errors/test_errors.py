"""Tests for error types and classification."""

import asyncio
import json

import httpx
import msgspec
import pytest

from pulseboard.auth.base import RefreshError
from pulseboard.errors.classify import classify_exception
from pulseboard.errors.classify import classify_http_status_error
from pulseboard.errors.types import ErrorCategory
from pulseboard.errors.types import ErrorSeverity
from pulseboard.errors.types import PulseError
from pulseboard.errors.types import classify_http_error
from pulseboard.errors.types import severity_for


def status_error(status: int, **kwargs) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.example.test/metrics")
    response = httpx.Response(status, request=request, **kwargs)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestPulseError:
    """Tests for PulseError."""

    def test_of_fills_severity_and_remediation(self):
        error = PulseError.of(
            ErrorCategory.RATE_LIMITED, "slow down", provider="stripe", app_id="shop"
        )

        assert error.severity == ErrorSeverity.TRANSIENT
        assert "stripe is rate limiting" in error.remediation
        assert error.app_id == "shop"
        assert error.describe() == "rate_limited: slow down"

    def test_unknown_has_no_remediation(self):
        assert PulseError.of(ErrorCategory.UNKNOWN, "?").remediation is None

    def test_is_serializable(self):
        error = PulseError.of(ErrorCategory.EXPIRED, "expired", provider="gmail")

        data = json.loads(msgspec.json.encode(error))

        assert data["category"] == "expired"
        assert data["severity"] == "recoverable"


class TestHttpMapping:
    """Tests for HTTP status classification."""

    @pytest.mark.parametrize(
        "status,category",
        [
            (401, ErrorCategory.AUTHENTICATION),
            (404, ErrorCategory.CONFIGURATION),
            (429, ErrorCategory.RATE_LIMITED),
            (500, ErrorCategory.PROVIDER),
            (503, ErrorCategory.PROVIDER),
            (418, ErrorCategory.UNKNOWN),
        ],
    )
    def test_status_categories(self, status, category):
        assert classify_http_error(status).category == category

    def test_severity_for(self):
        assert severity_for(ErrorCategory.REVOKED) == ErrorSeverity.FATAL

    def test_json_error_detail(self):
        error = classify_http_status_error(status_error(429, json={"error": "quota"}), "posthog")

        assert error.category == ErrorCategory.RATE_LIMITED
        assert error.message == "HTTP 429: quota"
        assert error.details == {"status_code": 429}

    def test_text_error_detail(self):
        error = classify_http_status_error(status_error(502, text="bad gateway"))

        assert error.message == "HTTP 502: bad gateway"


class TestClassifyException:
    """Tests for classify_exception."""

    @pytest.mark.parametrize(
        "exc,category",
        [
            (RefreshError("gone", revoked=True), ErrorCategory.REVOKED),
            (RefreshError("refused"), ErrorCategory.AUTHENTICATION),
            (httpx.ReadTimeout("slow"), ErrorCategory.TIMEOUT),
            (httpx.ConnectError("refused"), ErrorCategory.NETWORK),
            (asyncio.TimeoutError(), ErrorCategory.TIMEOUT),
            (msgspec.DecodeError("bad"), ErrorCategory.MALFORMED),
            (KeyError("mrr"), ErrorCategory.MALFORMED),
            (ConnectionResetError("reset"), ErrorCategory.NETWORK),
            (RuntimeError("boom"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categories(self, exc, category):
        assert classify_exception(exc, "stripe").category == category

    def test_status_error(self):
        error = classify_exception(status_error(401, json={"message": "bad key"}), "vercel")

        assert error.category == ErrorCategory.AUTHENTICATION
        assert error.provider == "vercel"

    def test_unknown_keeps_type(self):
        error = classify_exception(RuntimeError())

        assert error.message == "RuntimeError"
        assert error.details == {"type": "RuntimeError"}
