"""Pytest configuration and shared fixtures for pulseboard tests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from pulseboard.auth.base import ProviderCredential, TokenPair, TokenRefresher
from pulseboard.config import settings as settings_module
from pulseboard.config.credentials import CredentialStore
from pulseboard.fetchers.base import FetchResult, ProviderFetcher
from pulseboard.models import (
    App,
    OAuthBundle,
    PostHogMetrics,
    ProviderConfig,
    StripeMetrics,
    SupabaseMetrics,
)


class FakeFetcher(ProviderFetcher):
    """Fetcher replaying scripted outcomes.

    Each outcome is a FetchResult, an exception to raise, or a callable
    taking the credential and returning a FetchResult. The last outcome
    repeats once the script runs out.
    """

    def __init__(self, kind: str, *outcomes: Any, delay: float = 0.0) -> None:
        self.kind = kind
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls: list[ProviderCredential] = []

    async def fetch(self, credential: ProviderCredential) -> FetchResult:
        self.calls.append(credential)
        if self.delay:
            await asyncio.sleep(self.delay)

        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(credential)
        return outcome


class FakeRefresher(TokenRefresher):
    """Refresher returning a fixed pair or raising a fixed error."""

    def __init__(self, outcome: TokenPair | BaseException, delay: float = 0.0) -> None:
        self.outcome = outcome
        self.delay = delay
        self.calls: list[str] = []

    async def refresh(self, refresh_token: str) -> TokenPair:
        self.calls.append(refresh_token)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point every pulseboard path at a temp dir and reset global state."""
    monkeypatch.setenv("PULSEBOARD_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("PULSEBOARD_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("PULSEBOARD_STATE_DIR", str(tmp_path / "state"))
    for var in (
        "PULSEBOARD_REFRESH_INTERVAL",
        "PULSEBOARD_MAX_CONCURRENT",
        "PULSEBOARD_GOOGLE_CLIENT_ID",
        "PULSEBOARD_GOOGLE_CLIENT_SECRET",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(settings_module, "_config", None)

    yield tmp_path

    # The CLI installs its own handler on the package logger
    logger = logging.getLogger("pulseboard")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def utc_now() -> datetime:
    """Fixed UTC datetime for consistent testing."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def today(utc_now: datetime) -> date:
    return utc_now.date()


@pytest.fixture
def stripe_payload() -> StripeMetrics:
    return StripeMetrics(
        mrr=100.0,
        active_subscriptions=10,
        revenue_30d=95.0,
        churn_rate=5.0,
        arr=1200.0,
    )


@pytest.fixture
def supabase_payload() -> SupabaseMetrics:
    return SupabaseMetrics(total_users=250, new_users_7d=12, api_requests_24h=4000)


@pytest.fixture
def posthog_payload() -> PostHogMetrics:
    return PostHogMetrics(
        total_events_24h=300,
        unique_users_24h=40,
        total_events_7d=2100,
        unique_users_7d=180,
    )


@pytest.fixture
def stripe_app() -> App:
    """App with a single API-key provider."""
    return App(
        id="shop",
        name="Shop",
        integrations=[ProviderConfig(kind="stripe", api_key="sk_test")],
    )


@pytest.fixture
def google_app() -> App:
    """App whose Google grant covers calendar and inbox."""
    return App(
        id="agenda",
        name="Agenda",
        google_auth=OAuthBundle(
            enabled=True,
            access_token="old-token",
            refresh_token="refresh-1",
            scopes=[
                "https://www.googleapis.com/auth/calendar.readonly",
                "https://www.googleapis.com/auth/gmail.readonly",
            ],
        ),
    )


@pytest.fixture
def credential_store() -> CredentialStore:
    """Memory-only credential store."""
    return CredentialStore()


@pytest.fixture
def new_tokens() -> TokenPair:
    return TokenPair(access_token="new-token", refresh_token="refresh-2")


@pytest.fixture
def make_fetcher() -> Callable[..., FakeFetcher]:
    return FakeFetcher


@pytest.fixture
def make_refresher() -> Callable[..., FakeRefresher]:
    return FakeRefresher


@pytest.fixture
def mock_httpx_client() -> httpx.AsyncClient:
    """Mock httpx.AsyncClient."""
    client = MagicMock(spec=httpx.AsyncClient)
    client.get = AsyncMock()
    client.post = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock()
    client.is_closed = False
    client.aclose = AsyncMock()
    return client
