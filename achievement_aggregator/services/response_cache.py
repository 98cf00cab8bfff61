"""Response cache keyed by the externally observable request."""

import copy
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog

from .cache import ExpiringCache, canonical_json

log = structlog.stdlib.get_logger()

CACHEABLE_METHODS = frozenset({"GET", "HEAD"})


class ResponseCacheService:
    """Caches whole endpoint responses by route and query.

    Sits in front of the aggregation pipeline, so a hit skips the merge
    engine and every upstream call. It has its own store and key space and
    shares nothing with the Steam client's request cache.
    """

    def __init__(
        self,
        default_ttl: float = 3600,
        max_entries: int = 4096,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._cache = ExpiringCache(
            "responses",
            default_ttl=default_ttl,
            max_entries=max_entries,
            timer=timer,
        )
        log.info("Response cache service initialized", default_ttl=default_ttl, max_entries=max_entries)

    @staticmethod
    def build_key(route: str, query: Mapping[str, Any] | None = None) -> str:
        """Route plus a canonical serialization of the query parameters."""
        params = {k: v for k, v in (query or {}).items() if v is not None}
        return f"{route}:{canonical_json(params)}"

    def get(self, key: str) -> Any:
        return self._cache.get(key)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        self._cache.set(key, value, self.default_ttl if ttl is None else ttl)

    async def get_or_compute(
        self,
        route: str,
        query: Mapping[str, Any] | None,
        producer: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
        method: str = "GET",
    ) -> tuple[Any, bool]:
        """Serve a cached response or produce, store and return a fresh one.

        Only read requests are eligible; other methods always call
        ``producer`` and never touch the cache. Producer failures are not
        cached. Callers receive their own copy, so mutating a returned
        value never alters the stored one.

        Returns:
            The response value and whether it came from the cache
        """
        if method.upper() not in CACHEABLE_METHODS:
            return await producer(), False

        key = self.build_key(route, query)
        cached = self.get(key)
        if cached is not None:
            log.info("Response cache hit", key=key)
            return copy.deepcopy(cached), True

        value = await producer()
        self.set(key, copy.deepcopy(value), ttl)
        return value, False
