"""Credential records and the token refresh contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

import msgspec

from pulseboard.models import ProviderConfig

class RefreshError(Exception):
    """Raised when a refresh token cannot be exchanged.

    ``revoked`` marks the terminal case: the grant itself was rejected and
    only re-authentication outside the pipeline can fix it.
    """

    def __init__(self, message: str, revoked: bool = False) -> None:
        super().__init__(message)
        self.revoked = revoked


class TokenPair(msgspec.Struct, frozen=True):
    """Access/refresh token pair returned by an OAuth refresh."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    token_type: str = "Bearer"
    scope: str | None = None


class ProviderCredential(msgspec.Struct, frozen=True, omit_defaults=True):
    """Everything a fetcher may need to authenticate one provider.

    API-key fields come from the app configuration. OAuth tokens come
    from the configuration until a refresh stores a newer pair;
    ``origin_refresh_token`` remembers which configured grant that pair
    was derived from.
    """

    api_key: str | None = None
    project_id: str | None = None
    team_id: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: datetime | None = None
    origin_refresh_token: str | None = None

    @classmethod
    def from_config(cls, config: ProviderConfig) -> ProviderCredential:
        return cls(
            api_key=config.api_key,
            project_id=config.project_id,
            team_id=config.team_id,
            access_token=config.access_token,
            refresh_token=config.refresh_token,
        )

    def can_refresh(self) -> bool:
        """Check if refresh is possible."""
        return self.refresh_token is not None

    def with_tokens(self, tokens: TokenPair) -> ProviderCredential:
        """Return a copy carrying a freshly refreshed token pair.

        Providers that do not rotate refresh tokens omit them from the
        response, so the current one is kept.
        """
        return msgspec.structs.replace(
            self,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token or self.refresh_token,
            expires_at=tokens.expires_at,
            origin_refresh_token=self.origin_refresh_token or self.refresh_token,
        )


class TokenRefresher(ABC):
    """Exchanges a refresh token for a new access token."""

    @abstractmethod
    async def refresh(self, refresh_token: str) -> TokenPair:
        """Return a new token pair.

        Raises:
            RefreshError: The exchange was refused. ``revoked`` is set when
                the refresh token itself is no longer valid.
        """
        ...
