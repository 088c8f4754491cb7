"""OAuth refresh grant against Google's token endpoint."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

from pulseboard.auth.base import RefreshError
from pulseboard.auth.base import TokenPair
from pulseboard.auth.base import TokenRefresher
from pulseboard.core.http import get_http_client

logger = logging.getLogger(__name__)

# OAuth error codes meaning the refresh token is dead
REVOKED_ERROR_CODES = frozenset({"invalid_grant", "unauthorized_client"})


class GoogleTokenRefresher(TokenRefresher):
    """Refresh Google OAuth tokens shared by Calendar and Gmail.

    Network failures are left to propagate; the fetch policy classifies
    them like any other transient failure.
    """

    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        client_id: str,
        client_secret: str | None = None,
        token_url: str | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url or self.TOKEN_URL

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange the refresh token for a new access token."""
        form = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
        }
        if self.client_secret:
            form["client_secret"] = self.client_secret

        async with get_http_client() as client:
            response = await client.post(self.token_url, data=form)

        try:
            data = response.json()
        except json.JSONDecodeError:
            data = {}

        if response.status_code != 200:
            error_code = data.get("error") if isinstance(data, dict) else None
            description = (
                data.get("error_description") if isinstance(data, dict) else None
            ) or response.text[:200]
            revoked = error_code in REVOKED_ERROR_CODES
            logger.info(
                "Google token refresh refused (status=%s, error=%s)",
                response.status_code,
                error_code,
            )
            raise RefreshError(
                f"Token refresh failed: {error_code or response.status_code}"
                + (f" ({description})" if description else ""),
                revoked=revoked,
            )

        access_token = data.get("access_token")
        if not access_token:
            raise RefreshError("Token refresh response had no access_token")

        expires_at = None
        if "expires_in" in data:
            expires_at = datetime.now(timezone.utc) + timedelta(
                seconds=int(data["expires_in"])
            )

        return TokenPair(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_at=expires_at,
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope"),
        )
