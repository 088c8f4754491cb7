"""Configuration management for pulseboard."""

from pulseboard.config.apps import credential_fingerprint
from pulseboard.config.apps import load_apps
from pulseboard.config.apps import load_settings
from pulseboard.config.cache import cache_snapshot
from pulseboard.config.cache import load_cached_snapshot
from pulseboard.config.cache import snapshot_path
from pulseboard.config.credentials import CredentialStore
from pulseboard.config.credentials import check_credential_permissions
from pulseboard.config.credentials import credential_path
from pulseboard.config.credentials import delete_credential
from pulseboard.config.credentials import read_credential
from pulseboard.config.credentials import write_credential
from pulseboard.config.paths import apps_file
from pulseboard.config.paths import cache_dir
from pulseboard.config.paths import config_dir
from pulseboard.config.paths import config_file
from pulseboard.config.paths import credentials_dir
from pulseboard.config.paths import ensure_directories
from pulseboard.config.paths import history_dir
from pulseboard.config.paths import snapshots_dir
from pulseboard.config.paths import state_dir
from pulseboard.config.settings import Config
from pulseboard.config.settings import FetchConfig
from pulseboard.config.settings import HistoryConfig
from pulseboard.config.settings import SyncConfig
from pulseboard.config.settings import get_config
from pulseboard.config.settings import load_config
from pulseboard.config.settings import reload_config
from pulseboard.config.settings import save_config

__all__ = [
    # paths
    "config_dir",
    "cache_dir",
    "state_dir",
    "credentials_dir",
    "history_dir",
    "snapshots_dir",
    "config_file",
    "apps_file",
    "ensure_directories",
    # settings
    "Config",
    "FetchConfig",
    "SyncConfig",
    "HistoryConfig",
    "get_config",
    "load_config",
    "reload_config",
    "save_config",
    # apps
    "load_apps",
    "load_settings",
    "credential_fingerprint",
    # credentials
    "CredentialStore",
    "credential_path",
    "write_credential",
    "read_credential",
    "delete_credential",
    "check_credential_permissions",
    # cache
    "snapshot_path",
    "cache_snapshot",
    "load_cached_snapshot",
]
