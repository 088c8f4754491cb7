"""Credential storage for pulseboard.

The CredentialStore is the only mutable state shared by concurrent app
syncs. Records are keyed by (app id, credential key) and each key is
written independently, so syncs of different apps or providers never
contend.
"""

from __future__ import annotations

import logging
import stat
from pathlib import Path

import msgspec

from pulseboard.auth.base import ProviderCredential
from pulseboard.auth.base import TokenPair
from pulseboard.config.keyring import delete_from_keyring
from pulseboard.config.keyring import get_from_keyring
from pulseboard.config.keyring import store_in_keyring
from pulseboard.models import ProviderConfig
from pulseboard.models import check_path_component
from pulseboard.models import credential_key

logger = logging.getLogger(__name__)


def credential_path(directory: Path, app_id: str, key: str) -> Path:
    """Get the path for one stored credential record."""
    check_path_component(key, "credential key")
    return directory / check_path_component(app_id) / f"{key}.json"


def write_credential(path: Path, content: bytes) -> None:
    """Securely write credential to file with 0o600 permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)

    # Write to temp file first, then rename for atomicity
    temp_path = path.with_suffix(".tmp")
    temp_path.write_bytes(content)
    temp_path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0o600
    temp_path.replace(path)


def read_credential(path: Path) -> bytes | None:
    """Read credential file if it exists and has secure permissions."""
    if not path.exists():
        return None

    if not check_credential_permissions(path):
        logger.warning("Ignoring credential file with unsafe permissions: %s", path)
        return None

    return path.read_bytes()


def delete_credential(path: Path) -> bool:
    """Delete credential file.

    Returns:
        True if deleted, False if didn't exist
    """
    if not path.exists():
        return False

    path.unlink()
    return True


def check_credential_permissions(path: Path) -> bool:
    """Verify credential file has secure permissions (0o600 or stricter)."""
    if not path.exists():
        return True

    mode = path.stat().st_mode
    return not (mode & (stat.S_IRGRP | stat.S_IWGRP | stat.S_IROTH | stat.S_IWOTH))


class CredentialStore:
    """Per-app, per-provider credential records.

    Writes are last-write-wins per key. With a ``directory`` each record
    is persisted to its own file; with ``use_keyring`` the system keyring
    is tried first. Without either the store is memory-only.
    """

    def __init__(self, directory: Path | None = None, use_keyring: bool = False) -> None:
        self._directory = directory
        self._use_keyring = use_keyring
        self._records: dict[tuple[str, str], ProviderCredential] = {}
        self._loaded: set[tuple[str, str]] = set()

    def get(self, app_id: str, key: str) -> ProviderCredential | None:
        """Return the stored record for (app, key), loading it once from disk."""
        record_key = (app_id, key)
        if record_key not in self._records and record_key not in self._loaded:
            self._loaded.add(record_key)
            record = self._load(app_id, key)
            if record is not None:
                self._records[record_key] = record
        return self._records.get(record_key)

    def put(self, app_id: str, key: str, credential: ProviderCredential) -> None:
        """Store a record, replacing whatever was there."""
        self._records[(app_id, key)] = credential
        self._loaded.add((app_id, key))
        self._persist(app_id, key, credential)

    def delete(self, app_id: str, key: str) -> bool:
        """Forget a record, e.g. after the user disconnects an account."""
        existed = self._records.pop((app_id, key), None) is not None
        self._loaded.add((app_id, key))
        if self._use_keyring and delete_from_keyring(app_id, key):
            existed = True
        if self._directory is not None:
            existed = delete_credential(credential_path(self._directory, app_id, key)) or existed
        return existed

    def store_tokens(
        self,
        app_id: str,
        key: str,
        current: ProviderCredential,
        tokens: TokenPair,
    ) -> ProviderCredential:
        """Record a refreshed token pair and return the updated credential."""
        updated = current.with_tokens(tokens)
        self.put(app_id, key, updated)
        logger.info("Stored refreshed credentials for %s/%s", app_id, key)
        return updated

    def resolve(self, app_id: str, config: ProviderConfig) -> ProviderCredential:
        """Build the credential to fetch a provider with.

        API-key fields always come from the configuration. Stored OAuth
        tokens win while they derive from the configured grant; once the
        user re-authenticates, the configured tokens take over again.
        """
        base = ProviderCredential.from_config(config)
        stored = self.get(app_id, credential_key(config.kind))
        if stored is None or not stored.access_token:
            return base

        same_grant = base.refresh_token is None or base.refresh_token in (
            stored.refresh_token,
            stored.origin_refresh_token,
        )
        if not same_grant:
            return base

        return msgspec.structs.replace(
            base,
            access_token=stored.access_token,
            refresh_token=stored.refresh_token,
            expires_at=stored.expires_at,
            origin_refresh_token=stored.origin_refresh_token,
        )

    def _persist(self, app_id: str, key: str, credential: ProviderCredential) -> None:
        content = msgspec.json.encode(credential)
        if self._use_keyring and store_in_keyring(app_id, key, content.decode()):
            return
        if self._directory is not None:
            write_credential(credential_path(self._directory, app_id, key), content)

    def _load(self, app_id: str, key: str) -> ProviderCredential | None:
        content: bytes | None = None
        if self._use_keyring:
            value = get_from_keyring(app_id, key)
            if value is not None:
                content = value.encode()
        if content is None and self._directory is not None:
            content = read_credential(credential_path(self._directory, app_id, key))
        if content is None:
            return None

        try:
            return msgspec.json.decode(content, type=ProviderCredential)
        except msgspec.DecodeError as e:
            logger.warning("Discarding unreadable credential %s/%s: %s", app_id, key, e)
            return None
