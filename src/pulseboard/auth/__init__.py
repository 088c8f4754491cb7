"""Credentials and OAuth token refresh for pulseboard."""
from __future__ import annotations

from pulseboard.auth.base import ProviderCredential
from pulseboard.auth.base import RefreshError
from pulseboard.auth.base import TokenPair
from pulseboard.auth.base import TokenRefresher

__all__ = [
    "ProviderCredential",
    "RefreshError",
    "TokenPair",
    "TokenRefresher",
]
