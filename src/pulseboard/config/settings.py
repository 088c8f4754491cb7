"""Configuration structures and loading for pulseboard."""

import os
import tomllib
from pathlib import Path

import msgspec


# Default values
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_CONCURRENT = 5
DEFAULT_REFRESH_INTERVAL_MINUTES = 5
DEFAULT_RETENTION_DAYS = 90


# Fetch configuration
class FetchConfig(msgspec.Struct, omit_defaults=True):
    """Fetch behavior settings."""

    timeout: float = DEFAULT_TIMEOUT  # per fetch and per token refresh, seconds
    max_concurrent: int = DEFAULT_MAX_CONCURRENT  # apps synced in parallel
    rate_limit_skip_passes: int = 0  # passes to skip a rate-limited provider


# Sync configuration
class SyncConfig(msgspec.Struct, omit_defaults=True):
    """Scheduling settings."""

    refresh_interval_minutes: int = DEFAULT_REFRESH_INTERVAL_MINUTES
    run_on_start: bool = True
    cache_snapshots: bool = True


# History configuration
class HistoryConfig(msgspec.Struct, omit_defaults=True):
    """Snapshot history settings."""

    retention_days: int = DEFAULT_RETENTION_DAYS


# Credentials configuration
class CredentialsConfig(msgspec.Struct, omit_defaults=True):
    """Credential management settings."""

    use_keyring: bool = False


# OAuth client configuration
class OAuthConfig(msgspec.Struct, omit_defaults=True):
    """OAuth client used to refresh Google tokens."""

    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_token_url: str | None = None


# Main configuration
class Config(msgspec.Struct, omit_defaults=True):
    """Main configuration structure."""

    fetch: FetchConfig = msgspec.field(default_factory=FetchConfig)
    sync: SyncConfig = msgspec.field(default_factory=SyncConfig)
    history: HistoryConfig = msgspec.field(default_factory=HistoryConfig)
    credentials: CredentialsConfig = msgspec.field(default_factory=CredentialsConfig)
    oauth: OAuthConfig = msgspec.field(default_factory=OAuthConfig)


def _load_from_toml(path: Path) -> dict:
    """Load configuration from TOML file."""
    if not path.exists():
        return {}

    with path.open("rb") as f:
        return tomllib.load(f)


def _save_to_toml(data: dict, path: Path) -> None:
    """Save configuration to TOML file."""
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)


def convert_config(data: dict) -> Config:
    """Convert raw dict to Config struct."""
    return msgspec.convert(data, type=Config)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config.

    PULSEBOARD_REFRESH_INTERVAL: Minutes between scheduled passes
    PULSEBOARD_MAX_CONCURRENT: Apps synced in parallel
    PULSEBOARD_GOOGLE_CLIENT_ID / PULSEBOARD_GOOGLE_CLIENT_SECRET: OAuth client
    """
    if value := os.environ.get("PULSEBOARD_REFRESH_INTERVAL"):
        sync = msgspec.structs.replace(
            config.sync, refresh_interval_minutes=int(value)
        )
        config = msgspec.structs.replace(config, sync=sync)

    if value := os.environ.get("PULSEBOARD_MAX_CONCURRENT"):
        fetch = msgspec.structs.replace(config.fetch, max_concurrent=int(value))
        config = msgspec.structs.replace(config, fetch=fetch)

    oauth = config.oauth
    if value := os.environ.get("PULSEBOARD_GOOGLE_CLIENT_ID"):
        oauth = msgspec.structs.replace(oauth, google_client_id=value)
    if value := os.environ.get("PULSEBOARD_GOOGLE_CLIENT_SECRET"):
        oauth = msgspec.structs.replace(oauth, google_client_secret=value)
    if oauth is not config.oauth:
        config = msgspec.structs.replace(config, oauth=oauth)

    return config


# Config state storage
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration (singleton)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from disk."""
    global _config
    _config = load_config()
    return _config


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file with defaults."""
    from .paths import config_file

    config_path = path or config_file()

    raw_data = _load_from_toml(config_path)
    config = convert_config(raw_data) if raw_data else Config()

    return _apply_env_overrides(config)


def save_config(config: Config, path: Path | None = None) -> None:
    """Save configuration to file."""
    from .paths import config_file

    config_path = path or config_file()

    # TOML has no null; drop unset values
    def clean_none(d: dict) -> dict:
        return {
            k: clean_none(v) if isinstance(v, dict) else v
            for k, v in d.items()
            if v is not None
        }

    _save_to_toml(clean_none(msgspec.to_builtins(config)), config_path)

    # Update singleton
    global _config
    _config = config
