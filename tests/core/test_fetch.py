"""Tests for the single-provider fetch policy."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from pulseboard.auth.base import RefreshError
from pulseboard.core.fetch import RefreshContext
from pulseboard.core.fetch import fetch_provider
from pulseboard.errors.types import ErrorCategory
from pulseboard.fetchers.base import FetchResult
from pulseboard.models import ProviderConfig

CALENDAR = ProviderConfig(
    kind="google_calendar", access_token="old-token", refresh_token="refresh-1"
)
GMAIL = ProviderConfig(kind="gmail", access_token="old-token", refresh_token="refresh-1")


def ok_with_new_token(payload):
    """Outcome that only succeeds once the refreshed token is used."""

    def outcome(credential):
        if credential.access_token == "new-token":
            return FetchResult.ok(payload)
        return FetchResult.expired()

    return outcome


class TestFetchSuccess:
    """Tests for plain successes and failures."""

    @pytest.mark.asyncio
    async def test_success_is_present(self, make_fetcher, credential_store, stripe_payload):
        """A successful fetch records the payload after one attempt."""
        fetcher = make_fetcher("stripe", FetchResult.ok(stripe_payload))
        config = ProviderConfig(kind="stripe", api_key="sk_test")

        result = await fetch_provider("shop", config, fetcher, credential_store)

        assert result.present is True
        assert result.payload == stripe_payload
        assert result.attempts == 1
        assert result.refreshed is False
        assert fetcher.calls[0].api_key == "sk_test"

    @pytest.mark.asyncio
    async def test_non_expiry_failure_does_not_refresh(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """Rate limits and other failures are recorded without a refresh."""
        fetcher = make_fetcher(
            "google_calendar", FetchResult.fail(ErrorCategory.RATE_LIMITED, "Slow down")
        )
        refresher = make_refresher(new_tokens)

        result = await fetch_provider(
            "agenda", CALENDAR, fetcher, credential_store, refresher
        )

        assert result.present is False
        assert result.error.category == ErrorCategory.RATE_LIMITED
        assert result.error.app_id == "agenda"
        assert result.error.provider == "google_calendar"
        assert refresher.calls == []
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_exception_is_classified(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """A raising fetcher becomes an absent result, never an exception."""
        fetcher = make_fetcher("google_calendar", httpx.ConnectError("refused"))
        refresher = make_refresher(new_tokens)

        result = await fetch_provider(
            "agenda", CALENDAR, fetcher, credential_store, refresher
        )

        assert result.present is False
        assert result.error.category == ErrorCategory.NETWORK
        assert refresher.calls == []

    @pytest.mark.asyncio
    async def test_timeout_is_not_expiry(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """A fetch exceeding the timeout fails without triggering a refresh."""
        fetcher = make_fetcher("google_calendar", FetchResult.expired(), delay=1.0)
        refresher = make_refresher(new_tokens)

        result = await fetch_provider(
            "agenda", CALENDAR, fetcher, credential_store, refresher, timeout=0.01
        )

        assert result.present is False
        assert result.error.category == ErrorCategory.TIMEOUT
        assert refresher.calls == []

    @pytest.mark.asyncio
    async def test_failure_without_category_is_unknown(self, make_fetcher, credential_store):
        fetcher = make_fetcher("stripe", FetchResult(success=False))
        config = ProviderConfig(kind="stripe", api_key="sk_test")

        result = await fetch_provider("shop", config, fetcher, credential_store)

        assert result.error.category == ErrorCategory.UNKNOWN
        assert result.error.message == "Fetch failed"


class TestExpiryRecovery:
    """Tests for the expired-credential refresh and single retry."""

    @pytest.mark.asyncio
    async def test_refresh_then_retry_succeeds(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """Expired, refreshed and retried yields data and exactly one store write."""
        fetcher = make_fetcher("google_calendar", ok_with_new_token({"events": []}))
        refresher = make_refresher(new_tokens)

        with patch.object(credential_store, "put", wraps=credential_store.put) as put:
            result = await fetch_provider(
                "agenda", CALENDAR, fetcher, credential_store, refresher
            )

        assert result.present is True
        assert result.attempts == 2
        assert result.refreshed is True
        assert refresher.calls == ["refresh-1"]
        assert put.call_count == 1
        stored = credential_store.get("agenda", "google")
        assert stored.access_token == "new-token"
        assert stored.refresh_token == "refresh-2"
        assert stored.origin_refresh_token == "refresh-1"

    @pytest.mark.asyncio
    async def test_expired_without_refresh_token(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """No refresh token means absent and zero store writes."""
        config = ProviderConfig(kind="google_calendar", access_token="old-token")
        fetcher = make_fetcher("google_calendar", FetchResult.expired())
        refresher = make_refresher(new_tokens)

        with patch.object(credential_store, "put", wraps=credential_store.put) as put:
            result = await fetch_provider(
                "agenda", config, fetcher, credential_store, refresher
            )

        assert result.present is False
        assert result.error.category == ErrorCategory.EXPIRED
        assert result.refreshed is False
        assert put.call_count == 0
        assert refresher.calls == []

    @pytest.mark.asyncio
    async def test_expired_without_refresher(self, make_fetcher, credential_store):
        fetcher = make_fetcher("google_calendar", FetchResult.expired())

        result = await fetch_provider("agenda", CALENDAR, fetcher, credential_store)

        assert result.present is False
        assert result.error.category == ErrorCategory.EXPIRED
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_second_expiry_does_not_refresh_again(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """A retry that expires again ends absent after a single refresh."""
        fetcher = make_fetcher("google_calendar", FetchResult.expired())
        refresher = make_refresher(new_tokens)

        result = await fetch_provider(
            "agenda", CALENDAR, fetcher, credential_store, refresher
        )

        assert result.present is False
        assert result.error.category == ErrorCategory.EXPIRED
        assert result.attempts == 2
        assert result.refreshed is True
        assert len(refresher.calls) == 1
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_retry_failure_of_other_kind(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """Any failure on the retry is final."""
        fetcher = make_fetcher(
            "google_calendar",
            FetchResult.expired(),
            httpx.ReadTimeout("slow"),
        )
        refresher = make_refresher(new_tokens)

        result = await fetch_provider(
            "agenda", CALENDAR, fetcher, credential_store, refresher
        )

        assert result.present is False
        assert result.error.category == ErrorCategory.TIMEOUT
        assert result.attempts == 2
        assert len(refresher.calls) == 1

    @pytest.mark.asyncio
    async def test_revoked_refresh_is_terminal(
        self, make_fetcher, make_refresher, credential_store
    ):
        """A revoked grant is recorded without retrying the fetch."""
        fetcher = make_fetcher("google_calendar", FetchResult.expired())
        refresher = make_refresher(RefreshError("invalid_grant", revoked=True))

        with patch.object(credential_store, "put", wraps=credential_store.put) as put:
            result = await fetch_provider(
                "agenda", CALENDAR, fetcher, credential_store, refresher
            )

        assert result.present is False
        assert result.error.category == ErrorCategory.REVOKED
        assert result.error.app_id == "agenda"
        assert put.call_count == 0
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_refresh_timeout(self, make_fetcher, make_refresher, credential_store, new_tokens):
        fetcher = make_fetcher("google_calendar", FetchResult.expired())
        refresher = make_refresher(new_tokens, delay=1.0)

        result = await fetch_provider(
            "agenda", CALENDAR, fetcher, credential_store, refresher, timeout=0.01
        )

        assert result.present is False
        assert result.error.category == ErrorCategory.TIMEOUT
        assert credential_store.get("agenda", "google") is None


class TestSharedGrant:
    """Tests for providers sharing one OAuth grant within a pass."""

    @pytest.mark.asyncio
    async def test_group_refreshes_once(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """The second provider of a grant reuses the tokens refreshed by the first."""
        calendar = make_fetcher("google_calendar", ok_with_new_token({"events": []}))
        gmail = make_fetcher("gmail", ok_with_new_token({"unreadCount": 3}))
        refresher = make_refresher(new_tokens)
        context = RefreshContext()

        first = await fetch_provider(
            "agenda", CALENDAR, calendar, credential_store, refresher, context=context
        )
        second = await fetch_provider(
            "agenda", GMAIL, gmail, credential_store, refresher, context=context
        )

        assert first.present and second.present
        assert second.attempts == 1
        assert second.refreshed is False
        assert gmail.calls[0].access_token == "new-token"
        assert len(refresher.calls) == 1

    @pytest.mark.asyncio
    async def test_group_failure_is_shared(self, make_fetcher, make_refresher, credential_store):
        """After a refused refresh, the rest of the grant is not refreshed again."""
        calendar = make_fetcher("google_calendar", FetchResult.expired())
        gmail = make_fetcher("gmail", FetchResult.expired())
        refresher = make_refresher(RefreshError("invalid_grant", revoked=True))
        context = RefreshContext()

        await fetch_provider(
            "agenda", CALENDAR, calendar, credential_store, refresher, context=context
        )
        second = await fetch_provider(
            "agenda", GMAIL, gmail, credential_store, refresher, context=context
        )

        assert second.present is False
        assert second.error.category == ErrorCategory.REVOKED
        assert second.error.provider == "gmail"
        assert len(refresher.calls) == 1

    @pytest.mark.asyncio
    async def test_still_expired_after_group_refresh(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        calendar = make_fetcher("google_calendar", ok_with_new_token({"events": []}))
        gmail = make_fetcher("gmail", FetchResult.expired())
        refresher = make_refresher(new_tokens)
        context = RefreshContext()

        await fetch_provider(
            "agenda", CALENDAR, calendar, credential_store, refresher, context=context
        )
        second = await fetch_provider(
            "agenda", GMAIL, gmail, credential_store, refresher, context=context
        )

        assert second.present is False
        assert second.error.category == ErrorCategory.EXPIRED
        assert len(refresher.calls) == 1
        assert len(gmail.calls) == 1

    @pytest.mark.asyncio
    async def test_new_pass_may_refresh_again(
        self, make_fetcher, make_refresher, credential_store, new_tokens
    ):
        """Refresh bookkeeping does not carry over between passes."""
        fetcher = make_fetcher("google_calendar", FetchResult.expired())
        refresher = make_refresher(new_tokens)

        await fetch_provider("agenda", CALENDAR, fetcher, credential_store, refresher)
        await fetch_provider("agenda", CALENDAR, fetcher, credential_store, refresher)

        assert len(refresher.calls) == 2
        assert refresher.calls[1] == "refresh-2"
