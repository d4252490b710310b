"""Time-bounded in-memory cache with stale fallback."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

import structlog

from chainlens.core.errors import ChainlensError, StaleDataServed

logger = structlog.get_logger()

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class CacheResult(Generic[V]):
    value: V
    fetched_at: float
    stale: StaleDataServed | None = None

    @property
    def is_stale(self) -> bool:
        return self.stale is not None


class TtlCache(Generic[K, V]):
    """Entries expire ``ttl`` seconds after they were fetched.

    Concurrent misses for one key share a single refresh. When a refresh
    fails and an expired entry exists, that entry is served and the failure
    is attached to the result.
    """

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[K, tuple[float, V]] = {}
        self._locks: dict[K, asyncio.Lock] = {}

    def peek(self, key: K) -> V | None:
        """Fresh value for ``key`` without refreshing."""
        entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry[0]):
            return None
        return entry[1]

    def put(self, key: K, value: V) -> None:
        self._entries[key] = (self._clock(), value)

    async def get_or_refresh(self, key: K, refresh: Callable[[], Awaitable[V]]) -> CacheResult[V]:
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry[0]):
            return CacheResult(value=entry[1], fetched_at=entry[0])

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another waiter may have refreshed while we queued
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry[0]):
                return CacheResult(value=entry[1], fetched_at=entry[0])

            try:
                value = await refresh()
            except ChainlensError as exc:
                if entry is None:
                    raise
                stale = StaleDataServed(key, self._clock() - entry[0], exc)
                logger.warning("stale_data_served", key=str(key), age=stale.age, error=str(exc))
                return CacheResult(value=entry[1], fetched_at=entry[0], stale=stale)

            fetched_at = self._clock()
            self._entries[key] = (fetched_at, value)
            logger.debug("cache_refreshed", key=str(key))
            return CacheResult(value=value, fetched_at=fetched_at)

    def invalidate(self, key: K | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _is_fresh(self, fetched_at: float) -> bool:
        return self._clock() - fetched_at < self.ttl
