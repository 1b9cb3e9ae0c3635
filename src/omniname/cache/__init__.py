"""Resolution caching: in-process LRU and optional Redis backend."""

from .keys import CacheKey, CacheKeys
from .memory import ResolutionCache, ResolutionCacheBackend
from .redis import RedisResolutionCache

__all__ = [
    "CacheKey",
    "CacheKeys",
    "RedisResolutionCache",
    "ResolutionCache",
    "ResolutionCacheBackend",
]
