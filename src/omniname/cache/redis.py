"""Redis-backed resolution cache shared across processes."""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from omniname.core.exceptions import CacheError
from omniname.core.models import CacheStats, NameRecords, ResolutionResult
from omniname.core.types import CacheKind

from .keys import CacheKey, CacheKeys

logger = logging.getLogger(__name__)


class RedisResolutionCache:
    """
    Resolution cache stored in Redis.

    Values are serialized to JSON through pydantic and expire with ``EX``.
    Capacity is left to the server's own eviction policy.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        *,
        redis: aioredis.Redis | None = None,
        max_connections: int = 20,
    ) -> None:
        if redis_url is None and redis is None:
            raise CacheError("Either redis_url or a redis client is required")
        self._redis_url = redis_url
        self._max_connections = max_connections
        self._pool: aioredis.ConnectionPool | None = None
        self._redis: aioredis.Redis | None = redis
        self._hits = 0
        self._misses = 0

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._redis is not None:
            return
        self._pool = aioredis.ConnectionPool.from_url(
            self._redis_url,
            max_connections=self._max_connections,
            decode_responses=True,
        )
        self._redis = aioredis.Redis(connection_pool=self._pool)

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis:
            await self._redis.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._redis = None
        self._pool = None

    async def _client(self) -> aioredis.Redis:
        if self._redis is None:
            await self.connect()
        return self._redis

    async def get(self, key: CacheKey) -> Any | None:
        """Get a value from cache."""
        client = await self._client()
        try:
            raw = await client.get(CacheKeys.to_string(key))
        except RedisError as e:
            raise CacheError(f"Redis get failed: {e}") from e

        if raw is None:
            self._misses += 1
            return None

        try:
            value = self._deserialize(key.kind, raw)
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Dropping undecodable cache entry %s", CacheKeys.to_string(key))
            self._misses += 1
            await self.invalidate(key)
            return None

        self._hits += 1
        return value

    async def put(self, key: CacheKey, value: Any, ttl: float) -> None:
        """Set a value in cache with TTL."""
        seconds = int(ttl)
        if seconds <= 0:
            return
        client = await self._client()
        try:
            await client.set(CacheKeys.to_string(key), self._serialize(value), ex=seconds)
        except RedisError as e:
            raise CacheError(f"Redis set failed: {e}") from e

    async def invalidate(self, key: CacheKey) -> bool:
        """Delete a key from cache."""
        client = await self._client()
        try:
            return await client.delete(CacheKeys.to_string(key)) > 0
        except RedisError as e:
            raise CacheError(f"Redis delete failed: {e}") from e

    async def invalidate_subject(self, subject: str) -> int:
        client = await self._client()
        try:
            keys = [k async for k in client.scan_iter(match=CacheKeys.subject_pattern(subject))]
            if not keys:
                return 0
            return await client.delete(*keys)
        except RedisError as e:
            raise CacheError(f"Redis invalidation failed: {e}") from e

    async def clear(self) -> None:
        client = await self._client()
        try:
            keys = [k async for k in client.scan_iter(match=f"{CacheKeys.PREFIX}:*")]
            if keys:
                await client.delete(*keys)
        except RedisError as e:
            raise CacheError(f"Redis clear failed: {e}") from e

    async def stats(self) -> CacheStats:
        client = await self._client()
        size = 0
        try:
            async for _ in client.scan_iter(match=f"{CacheKeys.PREFIX}:*"):
                size += 1
        except RedisError as e:
            raise CacheError(f"Redis scan failed: {e}") from e
        return CacheStats(hits=self._hits, misses=self._misses, size=size)

    @staticmethod
    def _serialize(value: Any) -> str:
        if isinstance(value, (ResolutionResult, NameRecords)):
            return value.model_dump_json()
        return json.dumps(value)

    @staticmethod
    def _deserialize(kind: CacheKind, raw: str) -> Any:
        match kind:
            case CacheKind.FORWARD:
                return ResolutionResult.model_validate_json(raw)
            case CacheKind.RECORDS:
                return NameRecords.model_validate_json(raw)
            case _:
                return json.loads(raw)

    async def __aenter__(self) -> "RedisResolutionCache":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
