"""Read-only access to the tracked apps configuration."""

from __future__ import annotations

from pathlib import Path

import msgspec

from pulseboard.models import App
from pulseboard.models import Settings


def load_settings(path: Path | None = None) -> Settings:
    """Load the settings document, returning defaults if it is missing."""
    from .paths import apps_file

    settings_path = path or apps_file()
    if not settings_path.exists():
        return Settings()

    return msgspec.json.decode(settings_path.read_bytes(), type=Settings)


def load_apps(path: Path | None = None) -> list[App]:
    """Load the tracked apps in configured order."""
    return list(load_settings(path).apps)


def credential_fingerprint(apps: list[App]) -> tuple:
    """Summarize every configured secret, to detect credential edits."""
    fingerprint = []
    for app in apps:
        for provider in app.enabled_providers():
            fingerprint.append(
                (
                    app.id,
                    provider.kind,
                    provider.api_key,
                    provider.project_id,
                    provider.team_id,
                    provider.refresh_token,
                )
            )
    return tuple(fingerprint)
