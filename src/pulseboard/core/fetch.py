"""Fetch policy for a single provider of a single app.

A fetch is attempted once. Only an expired credential leads to a token
refresh, and a successful refresh earns exactly one more attempt. Every
other outcome, including exceptions and timeouts, ends as an absent
result with the error attached.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from dataclasses import field

import msgspec

from pulseboard.auth.base import ProviderCredential
from pulseboard.auth.base import TokenRefresher
from pulseboard.config.credentials import CredentialStore
from pulseboard.config.settings import DEFAULT_TIMEOUT
from pulseboard.errors.classify import classify_exception
from pulseboard.errors.types import ErrorCategory
from pulseboard.errors.types import PulseError
from pulseboard.fetchers.base import FetchResult
from pulseboard.fetchers.base import ProviderFetcher
from pulseboard.models import ProviderConfig
from pulseboard.models import ProviderResult
from pulseboard.models import credential_key

logger = logging.getLogger(__name__)


@dataclass
class RefreshContext:
    """Refresh bookkeeping for one app during one pass.

    Providers sharing a credential key (the Google OAuth group) refresh
    at most once per pass: later providers in the group reuse the stored
    tokens, or the recorded failure, instead of refreshing again.
    """

    refreshed: set[str] = field(default_factory=set)
    failures: dict[str, PulseError] = field(default_factory=dict)


async def fetch_provider(
    app_id: str,
    config: ProviderConfig,
    fetcher: ProviderFetcher,
    credentials: CredentialStore,
    refresher: TokenRefresher | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    context: RefreshContext | None = None,
) -> ProviderResult:
    """Fetch one provider for one app, recovering once from an expired token.

    Args:
        app_id: App the provider belongs to
        config: Provider configuration from the app
        fetcher: Fetcher for the provider kind
        credentials: Store holding refreshed tokens
        refresher: Token refresher for OAuth credentials, if any
        timeout: Bound in seconds for each fetch and refresh call
        context: Per-pass refresh bookkeeping shared by the app's providers

    Returns:
        ProviderResult that is present on success, absent with an error otherwise
    """
    if context is None:
        context = RefreshContext()
    kind = config.kind
    key = credential_key(kind)
    credential = credentials.resolve(app_id, config)

    result = await _attempt(fetcher, credential, timeout)
    if result.success:
        return ProviderResult.ok(kind, result.payload)
    if not result.is_expired:
        return _absent(app_id, kind, _result_error(app_id, kind, result), attempts=1)

    if key in context.failures:
        error = msgspec.structs.replace(context.failures[key], provider=kind)
        return _absent(app_id, kind, error, attempts=1)

    if key in context.refreshed:
        # Already fetched with the tokens refreshed earlier in this pass
        return _absent(app_id, kind, _result_error(app_id, kind, result), attempts=1)

    if refresher is None or not credential.can_refresh():
        error = PulseError.of(
            ErrorCategory.EXPIRED,
            "Access token expired and no refresh token is available",
            provider=kind,
            app_id=app_id,
        )
        return _absent(app_id, kind, error, attempts=1)

    try:
        tokens = await asyncio.wait_for(
            refresher.refresh(credential.refresh_token), timeout=timeout
        )
    except Exception as e:
        error = msgspec.structs.replace(classify_exception(e, kind), app_id=app_id)
        context.failures[key] = error
        return _absent(app_id, kind, error, attempts=1)

    updated = credentials.store_tokens(app_id, key, credential, tokens)
    context.refreshed.add(key)

    retry = await _attempt(fetcher, updated, timeout)
    if retry.success:
        return ProviderResult.ok(kind, retry.payload, attempts=2, refreshed=True)
    return _absent(
        app_id, kind, _result_error(app_id, kind, retry), attempts=2, refreshed=True
    )


async def _attempt(
    fetcher: ProviderFetcher, credential: ProviderCredential, timeout: float
) -> FetchResult:
    """Run one bounded fetch call, converting exceptions to failures."""
    try:
        return await asyncio.wait_for(fetcher.fetch(credential), timeout=timeout)
    except asyncio.TimeoutError:
        return FetchResult.fail(ErrorCategory.TIMEOUT, f"Fetch timed out after {timeout:g}s")
    except Exception as e:
        error = classify_exception(e, fetcher.kind)
        return FetchResult.fail(error.category, error.message)


def _result_error(app_id: str, kind: str, result: FetchResult) -> PulseError:
    return PulseError.of(
        result.category or ErrorCategory.UNKNOWN,
        result.error or "Fetch failed",
        provider=kind,
        app_id=app_id,
    )


def _absent(
    app_id: str,
    kind: str,
    error: PulseError,
    attempts: int,
    refreshed: bool = False,
) -> ProviderResult:
    logger.warning(
        "%s/%s returned no data (%s): %s",
        app_id,
        kind,
        error.category.value,
        error.message,
    )
    return ProviderResult.absent(kind, error, attempts=attempts, refreshed=refreshed)
