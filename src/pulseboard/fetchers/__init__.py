"""Provider fetcher registry for pulseboard.

Fetchers are supplied from outside the pipeline, either registered in
process with :func:`register_fetcher` or published by an installed
package under the ``pulseboard.fetchers`` entry point group.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points

from pulseboard.fetchers.base import FetchResult
from pulseboard.fetchers.base import ProviderFetcher

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "pulseboard.fetchers"

# Fetcher registry
_FETCHERS: dict[str, type[ProviderFetcher]] = {}


def register_fetcher(cls: type[ProviderFetcher]) -> type[ProviderFetcher]:
    """Decorator to register a fetcher class.

    Usage:
        @register_fetcher
        class StripeFetcher(ProviderFetcher):
            kind = "stripe"
            ...
    """
    kind = getattr(cls, "kind", None)
    if not kind:
        raise ValueError(f"Fetcher {cls.__name__} must define a kind ClassVar")

    _FETCHERS[kind] = cls
    return cls


def unregister_fetcher(kind: str) -> None:
    """Remove a fetcher from the registry."""
    _FETCHERS.pop(kind, None)


def get_fetcher(kind: str) -> type[ProviderFetcher] | None:
    """Get a fetcher class by provider kind.

    Returns:
        Fetcher class or None if not found
    """
    return _FETCHERS.get(kind)


def list_fetcher_kinds() -> list[str]:
    """List all registered provider kinds."""
    return list(_FETCHERS.keys())


def load_entry_point_fetchers() -> list[str]:
    """Register fetchers published by installed packages.

    Returns:
        Kinds that were registered
    """
    loaded = []
    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        try:
            cls = entry_point.load()
            register_fetcher(cls)
        except (ImportError, AttributeError, ValueError) as e:
            logger.warning("Could not load fetcher %s: %s", entry_point.name, e)
            continue
        loaded.append(cls.kind)
    return loaded


def create_fetchers() -> dict[str, ProviderFetcher]:
    """Instantiate every registered fetcher, keyed by kind."""
    return {kind: cls() for kind, cls in _FETCHERS.items()}


__all__ = [
    "ProviderFetcher",
    "FetchResult",
    "ENTRY_POINT_GROUP",
    "register_fetcher",
    "unregister_fetcher",
    "get_fetcher",
    "list_fetcher_kinds",
    "load_entry_point_fetchers",
    "create_fetchers",
]
