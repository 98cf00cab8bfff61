"""In-process expiring key/value store.

Both the upstream request cache and the response cache are instances of
``ExpiringCache``; they never share an instance, keys or TTLs.
"""

import json
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from cachetools import TLRUCache

log = structlog.stdlib.get_logger()


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its absolute expiry on the cache's clock."""
    key: str
    value: Any
    expiry: float


def _entry_expiry(_key: str, entry: CacheEntry, _now: float) -> float:
    return entry.expiry


def canonical_json(params: Mapping[str, Any]) -> str:
    """Serialize parameters with stable key ordering."""
    return json.dumps(dict(params), sort_keys=True, separators=(",", ":"), default=str)


def request_cache_key(endpoint: str, params: Mapping[str, Any]) -> str:
    """Key for an upstream call: endpoint name plus canonical parameters."""
    return f"{endpoint}:{canonical_json(params)}"


class ExpiringCache:
    """TTL cache with per-entry expiry.

    Expired entries read as absent and are dropped on lookup; the backing
    ``TLRUCache`` also sweeps expired entries whenever a new one is stored.
    All operations are synchronous, so on a single event loop no coroutine
    can observe a half-applied update.
    """

    def __init__(
        self,
        name: str,
        default_ttl: float,
        max_entries: int = 4096,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.default_ttl = default_ttl
        self._timer = timer
        self._entries: TLRUCache = TLRUCache(
            maxsize=max_entries,
            ttu=_entry_expiry,
            timer=timer,
        )
        log.debug("Cache initialized", cache=name, default_ttl=default_ttl, max_entries=max_entries)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key`` or ``default``."""
        entry = self._entries.get(key)
        if entry is None:
            log.debug("Cache miss", cache=self.name, key=key)
            return default
        log.debug("Cache hit", cache=self.name, key=key)
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> CacheEntry:
        """Store ``value`` under ``key`` for ``ttl`` seconds (default TTL when None)."""
        ttl = self.default_ttl if ttl is None else ttl
        entry = CacheEntry(key=key, value=value, expiry=self._timer() + ttl)
        self._entries[key] = entry
        return entry

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
