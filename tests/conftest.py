"""Shared test fixtures for all tests."""

from __future__ import annotations

import pytest
from stubs import ManualClock

from omniname.cache.memory import ResolutionCache
from omniname.config import OmninameSettings
from omniname.providers.base import NameProvider
from omniname.resolution.orchestrator import NameOrchestrator, OrchestratorConfig
from omniname.resolution.router import Router

# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def cache(clock: ManualClock) -> ResolutionCache:
    return ResolutionCache(max_size=100, clock=clock)


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(cache_ttl=60.0, attempt_timeout=1.0, batch_concurrency=4)


@pytest.fixture
def make_orchestrator(
    cache: ResolutionCache,
    clock: ManualClock,
    orchestrator_config: OrchestratorConfig,
):
    """Factory building an orchestrator from (provider, patterns, fallback) tuples."""

    def _make(*registrations: tuple[NameProvider, list[str] | None, bool]) -> NameOrchestrator:
        router = Router()
        for provider, patterns, fallback in registrations:
            router.register(provider, patterns, fallback=fallback)
        return NameOrchestrator(router, cache=cache, clock=clock, config=orchestrator_config)

    return _make


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def mock_settings() -> OmninameSettings:
    """Create settings with every provider enabled."""
    return OmninameSettings(
        cifi_api_key="test-cifi-key",
        arbitrum_rpc_url="https://arb.example.com",
        cache_ttl=120,
        cache_max_size=50,
        attempt_timeout=2.0,
        batch_concurrency=4,
        debug=True,
        log_level="DEBUG",
    )


@pytest.fixture
def mock_settings_minimal() -> OmninameSettings:
    """Create settings without optional providers."""
    return OmninameSettings(
        cifi_api_key=None,
        arbitrum_rpc_url=None,
        redis_url=None,
    )
