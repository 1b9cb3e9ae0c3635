"""In-process LRU + TTL resolution cache."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Protocol

from omniname.core.clock import Clock, SystemClock
from omniname.core.models import CacheStats

from .keys import CacheKey

logger = logging.getLogger(__name__)


class ResolutionCacheBackend(Protocol):
    """Async contract shared by every cache backend."""

    async def get(self, key: CacheKey) -> Any | None: ...

    async def put(self, key: CacheKey, value: Any, ttl: float) -> None: ...

    async def invalidate(self, key: CacheKey) -> bool: ...

    async def invalidate_subject(self, subject: str) -> int: ...

    async def clear(self) -> None: ...

    async def stats(self) -> CacheStats: ...

    async def close(self) -> None: ...


@dataclass
class _Entry:
    value: Any
    expires_at: float


class ResolutionCache:
    """
    Bounded in-memory cache keyed by :class:`CacheKey`.

    Entries expire lazily on lookup once the clock's monotonic time passes
    their deadline. At capacity the least recently used entry is evicted
    before a new key is inserted; a hit refreshes recency.

    The lock is only held around dictionary operations, so the cache may be
    shared by coroutines and threads alike.
    """

    def __init__(self, max_size: int = 10_000, clock: Clock | None = None) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._clock = clock or SystemClock()
        self._entries: OrderedDict[CacheKey, _Entry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    async def get(self, key: CacheKey) -> Any | None:
        """Return the cached value, or None on a miss or expired entry."""
        now = self._clock.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if now >= entry.expires_at:
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    async def put(self, key: CacheKey, value: Any, ttl: float) -> None:
        """Store a value for ``ttl`` seconds."""
        if ttl <= 0:
            return

        expires_at = self._clock.monotonic() + ttl
        with self._lock:
            if key in self._entries:
                self._entries[key] = _Entry(value, expires_at)
                self._entries.move_to_end(key)
                return

            while len(self._entries) >= self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted cache entry %s", evicted)

            self._entries[key] = _Entry(value, expires_at)

    async def invalidate(self, key: CacheKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    async def invalidate_subject(self, subject: str) -> int:
        """Drop every entry for a name or address, across kinds and selectors."""
        with self._lock:
            stale = [key for key in self._entries if key.subject == subject]
            for key in stale:
                del self._entries[key]
        return len(stale)

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                evictions=self._evictions,
                expirations=self._expirations,
            )

    async def close(self) -> None:
        await self.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
