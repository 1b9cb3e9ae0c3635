"""Main library client for standalone usage."""

from __future__ import annotations

import logging
from typing import Iterable

from omniname.cache.memory import ResolutionCache, ResolutionCacheBackend
from omniname.cache.redis import RedisResolutionCache
from omniname.config import OmninameSettings
from omniname.core.clock import Clock, SystemClock
from omniname.core.exceptions import ConfigurationError
from omniname.core.models import (
    CacheStats,
    NameRecords,
    ProviderStats,
    ResolutionResult,
    ResolutionTrace,
    ResolveOptions,
)
from omniname.core.types import CacheBackend
from omniname.providers.base import NameProvider
from omniname.resolution.orchestrator import NameOrchestrator, OrchestratorConfig
from omniname.resolution.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class OmninameClient:
    """
    Main client for the omniname library.

    Resolves blockchain names across every configured naming authority
    behind one interface.

    Usage:
        async with OmninameClient() as client:
            # Forward resolution
            result = await client.resolve("vitalik.eth")

            # Reverse resolution
            name = await client.reverse_resolve("0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045")

            # Many names at once
            results = await client.resolve_many(["vitalik.eth", "brad.crypto", "@alice"])

    Settings are loaded from environment variables or can be passed explicitly.
    """

    def __init__(
        self,
        settings: OmninameSettings | None = None,
        *,
        registry: ProviderRegistry | None = None,
        cache: ResolutionCacheBackend | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            settings: Library settings. If not provided, loaded from environment.
            registry: Providers to use instead of the ones built from settings.
            cache: Cache backend to use instead of the one chosen by settings.
            clock: Time source for cache expiry and timestamps.
        """
        self._settings = settings or OmninameSettings()
        self._registry = registry
        self._cache = cache
        self._clock = clock or SystemClock()
        self._orchestrator: NameOrchestrator | None = None

    async def __aenter__(self) -> OmninameClient:
        """Initialize resources on context entry."""
        await self._initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Clean up resources on context exit."""
        await self.close()

    async def _initialize(self) -> None:
        """Initialize client resources."""
        level = "DEBUG" if self._settings.debug else self._settings.log_level.upper()
        logging.getLogger("omniname").setLevel(level)

        if self._registry is None:
            self._registry = ProviderRegistry.from_settings(self._settings)

        if self._cache is None:
            self._cache = self._create_cache()

        self._orchestrator = self._registry.build_orchestrator(
            cache=self._cache,
            clock=self._clock,
            config=OrchestratorConfig(
                cache_ttl=self._settings.cache_ttl,
                attempt_timeout=self._settings.attempt_timeout,
                batch_concurrency=self._settings.batch_concurrency,
                address_passthrough=self._settings.address_passthrough,
            ),
        )

    def _create_cache(self) -> ResolutionCacheBackend:
        if self._settings.cache_backend == CacheBackend.REDIS:
            if not self._settings.redis_url:
                raise ConfigurationError("The redis cache backend requires OMNINAME_REDIS_URL")
            logger.info("Using Redis resolution cache")
            return RedisResolutionCache(str(self._settings.redis_url))

        return ResolutionCache(max_size=self._settings.cache_max_size, clock=self._clock)

    async def close(self) -> None:
        """Close all resources."""
        if self._orchestrator:
            await self._orchestrator.close()
            self._orchestrator = None
        elif self._registry:
            await self._registry.close_all()

    @property
    def orchestrator(self) -> NameOrchestrator:
        """The underlying engine; the client must be initialized."""
        if self._orchestrator is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with OmninameClient() as client:'"
            )
        return self._orchestrator

    async def resolve(
        self,
        name: str,
        *,
        chain_id: int | None = None,
        coin_type: int | None = None,
        bypass_cache: bool = False,
        exhaustive: bool = False,
    ) -> ResolutionResult | None:
        """
        Resolve a name to an address.

        Args:
            name: Name such as ``vitalik.eth``, ``@alice`` or a raw address
            chain_id: Chain the address should be valid on
            coin_type: SLIP-0044 coin type of the wanted address
            bypass_cache: Skip the cache lookup
            exhaustive: Also try every provider whose patterns accept the name

        Returns:
            The resolution, or None when no provider has a record
        """
        options = ResolveOptions(
            chain_id=chain_id,
            coin_type=coin_type,
            bypass_cache=bypass_cache,
            exhaustive=exhaustive,
        )
        return await self.orchestrator.resolve(name, options)

    async def resolve_with_trace(
        self,
        name: str,
        options: ResolveOptions | None = None,
    ) -> ResolutionTrace:
        return await self.orchestrator.resolve_with_trace(name, options)

    async def resolve_many(
        self,
        names: Iterable[str],
        options: ResolveOptions | None = None,
    ) -> dict[str, ResolutionResult | None]:
        return await self.orchestrator.resolve_many(names, options)

    async def reverse_resolve(
        self,
        address: str,
        *,
        chain_id: int | None = None,
    ) -> str | None:
        return await self.orchestrator.reverse_resolve(address, ResolveOptions(chain_id=chain_id))

    async def reverse_resolve_many(
        self,
        addresses: Iterable[str],
        *,
        chain_id: int | None = None,
    ) -> dict[str, str | None]:
        """Primary names for many addresses, one key per input address."""
        return await self.orchestrator.reverse_resolve_many(
            addresses, ResolveOptions(chain_id=chain_id)
        )

    async def get_records(self, name: str) -> NameRecords | None:
        return await self.orchestrator.get_records(name)

    async def get_records_many(self, names: Iterable[str]) -> dict[str, NameRecords | None]:
        return await self.orchestrator.get_records_many(names)

    def providers_for(self, name: str, *, exhaustive: bool = False) -> list[str]:
        """Ids of the providers that would be tried for ``name``, in order."""
        return self.orchestrator.providers_for(name, exhaustive=exhaustive)

    def register_provider(
        self,
        provider: NameProvider,
        patterns: Iterable[str] | None = None,
        *,
        fallback: bool = False,
    ) -> None:
        self.orchestrator.register_provider(provider, patterns, fallback=fallback)

    async def invalidate_cache(self, name: str | None = None) -> None:
        await self.orchestrator.invalidate_cache(name)

    async def cache_stats(self) -> CacheStats:
        return await self.orchestrator.cache_stats()

    def provider_stats(self) -> dict[str, ProviderStats]:
        return self.orchestrator.provider_stats()


# Convenience function for one-off resolutions
async def resolve_name(
    name: str,
    *,
    chain_id: int | None = None,
    coin_type: int | None = None,
    settings: OmninameSettings | None = None,
) -> ResolutionResult | None:
    """
    Resolve a name (convenience function).

    For multiple resolutions, use OmninameClient for better performance.
    """
    async with OmninameClient(settings) as client:
        return await client.resolve(name, chain_id=chain_id, coin_type=coin_type)
