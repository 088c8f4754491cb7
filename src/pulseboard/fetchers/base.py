"""Provider fetcher base classes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

import msgspec

from pulseboard.auth.base import ProviderCredential
from pulseboard.errors.types import ErrorCategory


class FetchResult(msgspec.Struct, frozen=True):
    """Result of one fetch call."""

    success: bool
    payload: Any = None
    error: str | None = None
    category: ErrorCategory | None = None

    @classmethod
    def ok(cls, payload: Any) -> FetchResult:
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, category: ErrorCategory, error: str) -> FetchResult:
        return cls(success=False, error=error, category=category)

    @classmethod
    def expired(cls, error: str = "Access token expired") -> FetchResult:
        """The credential expired; the only outcome that triggers a refresh."""
        return cls(success=False, error=error, category=ErrorCategory.EXPIRED)

    @property
    def is_expired(self) -> bool:
        return not self.success and self.category == ErrorCategory.EXPIRED


class ProviderFetcher(ABC):
    """Capability that pulls one provider's current metrics.

    One instance serves every app using that provider kind, so fetchers
    must not keep per-app state. Parsing the provider's response into a
    payload struct is the fetcher's job.
    """

    # Provider kind this fetcher serves (e.g. "stripe")
    kind: ClassVar[str]

    @abstractmethod
    async def fetch(self, credential: ProviderCredential) -> FetchResult:
        """
        Fetch current metrics with the given credential.

        Returns FetchResult with a payload or a categorized failure.
        Report an expired access token with ``FetchResult.expired()``.
        Exceptions are classified by the caller, so fetchers may let
        transport errors propagate.
        """
        ...
