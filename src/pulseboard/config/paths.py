"""Platform-specific paths for pulseboard configuration, cache and state."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_cache_dir
from platformdirs import user_config_dir
from platformdirs import user_state_dir

PACKAGE_NAME = "pulseboard"


def _get_env_path(env_var: str, fallback: Path) -> Path:
    """Get path from environment variable or fallback."""
    if env_value := os.environ.get(env_var):
        return Path(env_value)
    return fallback


def config_dir() -> Path:
    """Get user config directory.

    Respects PULSEBOARD_CONFIG_DIR environment variable.
    """
    base_dir = Path(user_config_dir(PACKAGE_NAME))
    return _get_env_path("PULSEBOARD_CONFIG_DIR", base_dir)


def cache_dir() -> Path:
    """Get user cache directory.

    Respects PULSEBOARD_CACHE_DIR environment variable.
    """
    base_dir = Path(user_cache_dir(PACKAGE_NAME))
    return _get_env_path("PULSEBOARD_CACHE_DIR", base_dir)


def state_dir() -> Path:
    """Get user state directory for history and refreshed credentials.

    Respects PULSEBOARD_STATE_DIR environment variable.
    """
    base_dir = Path(user_state_dir(PACKAGE_NAME))
    return _get_env_path("PULSEBOARD_STATE_DIR", base_dir)


def credentials_dir() -> Path:
    """Get credentials subdirectory."""
    return state_dir() / "credentials"


def history_dir() -> Path:
    """Get per-app snapshot history directory."""
    return state_dir() / "history"


def snapshots_dir() -> Path:
    """Get cached app snapshots directory."""
    return cache_dir() / "snapshots"


def config_file() -> Path:
    """Get main config.toml path."""
    return config_dir() / "config.toml"


def apps_file() -> Path:
    """Get the settings document listing tracked apps."""
    return config_dir() / "settings.json"


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    for directory in (
        config_dir(),
        cache_dir(),
        state_dir(),
        credentials_dir(),
        history_dir(),
        snapshots_dir(),
    ):
        directory.mkdir(parents=True, exist_ok=True)
