"""Last-known app snapshot caching for pulseboard."""
from __future__ import annotations

import logging
from pathlib import Path

import msgspec

from pulseboard.config.paths import snapshots_dir
from pulseboard.models import AppMetricsSnapshot
from pulseboard.models import check_path_component
from pulseboard.models import decode_payload

logger = logging.getLogger(__name__)


def snapshot_path(app_id: str) -> Path:
    """Get path for an app's cached snapshot."""
    return snapshots_dir() / f"{check_path_component(app_id)}.json"


def cache_snapshot(snapshot: AppMetricsSnapshot) -> None:
    """Save an app snapshot to cache."""
    path = snapshot_path(snapshot.app_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(msgspec.json.encode(snapshot))


def load_cached_snapshot(app_id: str) -> AppMetricsSnapshot | None:
    """Load cached snapshot for an app, with typed payloads restored."""
    path = snapshot_path(app_id)
    if not path.exists():
        return None

    try:
        snapshot = msgspec.json.decode(path.read_bytes(), type=AppMetricsSnapshot)
        results = {
            kind: msgspec.structs.replace(
                result, payload=decode_payload(kind, result.payload)
            )
            for kind, result in snapshot.results.items()
        }
    except (msgspec.DecodeError, msgspec.ValidationError, OSError) as e:
        logger.debug("Ignoring unreadable cached snapshot for %s: %s", app_id, e)
        return None

    return msgspec.structs.replace(snapshot, results=results)

