"""Provider registry for creating and wiring provider instances."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from omniname.cache.memory import ResolutionCacheBackend
from omniname.core.clock import Clock
from omniname.providers.base import NameProvider, ProviderConfig, RateLimitConfig

from .orchestrator import NameOrchestrator, OrchestratorConfig
from .router import Router

if TYPE_CHECKING:
    from omniname.config import OmninameSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Registration:
    """A provider together with the patterns it is routed for."""

    provider: NameProvider
    patterns: tuple[str, ...]
    fallback: bool = False


class ProviderRegistry:
    """
    Factory for provider instances and the router built from them.

    Registrations keep their order, which is the order fallback
    candidates are tried in.
    """

    def __init__(self) -> None:
        self._registrations: list[Registration] = []

    @property
    def registrations(self) -> list[Registration]:
        return list(self._registrations)

    @property
    def providers(self) -> list[NameProvider]:
        seen: list[NameProvider] = []
        for registration in self._registrations:
            if registration.provider not in seen:
                seen.append(registration.provider)
        return seen

    def register(
        self,
        provider: NameProvider,
        patterns: Iterable[str] | None = None,
        *,
        fallback: bool = False,
    ) -> None:
        """Register a provider, defaulting to its own patterns."""
        resolved = tuple(provider.default_patterns if patterns is None else patterns)
        self._registrations.append(Registration(provider, resolved, fallback))

    def build_router(self) -> Router:
        router = Router()
        for registration in self._registrations:
            router.register(
                registration.provider,
                registration.patterns,
                fallback=registration.fallback,
            )
        return router

    def build_orchestrator(
        self,
        cache: ResolutionCacheBackend | None = None,
        clock: Clock | None = None,
        config: OrchestratorConfig | None = None,
    ) -> NameOrchestrator:
        return NameOrchestrator(self.build_router(), cache=cache, clock=clock, config=config)

    @classmethod
    def from_settings(cls, settings: "OmninameSettings") -> "ProviderRegistry":
        """
        Create a registry with providers configured from settings.

        Providers are registered according to the enable flags; CiFi is
        only added when an API key is configured.
        """
        registry = cls()
        rate_limit = RateLimitConfig(requests_per_second=settings.default_rate_limit_rps)

        def config_for(base_url: str, api_key: str | None = None) -> ProviderConfig:
            return ProviderConfig(
                base_url=base_url,
                api_key=api_key,
                timeout=settings.provider_timeout,
                rate_limit=rate_limit,
            )

        registry._register_evm_providers(settings, config_for)
        registry._register_non_evm_providers(settings, config_for)
        registry._register_cifi(settings, config_for)

        logger.debug(
            "Registered providers: %s",
            ", ".join(p.id for p in registry.providers),
        )
        return registry

    def _register_evm_providers(self, settings: "OmninameSettings", config_for) -> None:
        from omniname.providers.ens import EnsProvider
        from omniname.providers.spaceid import SpaceIdArbitrumProvider, SpaceIdProvider
        from omniname.providers.unstoppable import UnstoppableProvider

        if settings.enable_ens:
            self.register(
                EnsProvider(
                    config_for(settings.eth_rpc_url),
                    multicall_batch_size=settings.multicall_batch_size,
                )
            )

        if settings.enable_unstoppable:
            self.register(UnstoppableProvider(config_for(settings.polygon_rpc_url)))

        if settings.enable_spaceid:
            self.register(
                SpaceIdProvider(
                    config_for(settings.bnb_rpc_url),
                    multicall_batch_size=settings.multicall_batch_size,
                )
            )
            if settings.arbitrum_rpc_url:
                self.register(
                    SpaceIdArbitrumProvider(
                        config_for(settings.arbitrum_rpc_url),
                        multicall_batch_size=settings.multicall_batch_size,
                    )
                )

    def _register_non_evm_providers(self, settings: "OmninameSettings", config_for) -> None:
        from omniname.providers.sns import SnsProvider
        from omniname.providers.suins import SuiNsProvider

        if settings.enable_sns:
            self.register(SnsProvider(config_for(settings.sns_proxy_url)))

        if settings.enable_suins:
            self.register(SuiNsProvider(config_for(settings.sui_rpc_url)))

    def _register_cifi(self, settings: "OmninameSettings", config_for) -> None:
        if not (settings.enable_cifi and settings.cifi_api_key):
            return

        from omniname.providers.cifi import CiFiProvider

        self.register(
            CiFiProvider(config_for(settings.cifi_base_url, settings.cifi_api_key)),
            fallback=True,
        )

    async def close_all(self) -> None:
        """Close all registered providers."""
        for provider in self.providers:
            await provider.close()
