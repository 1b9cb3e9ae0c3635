"""Unit test fixtures with HTTP and ABI mocking."""

from __future__ import annotations

import pytest
import respx
from chain_mocks import RPC_URL, EthCallRouter

from omniname.providers.base import ProviderConfig, RateLimitConfig

# ============================================================================
# HTTP Mocking Fixtures
# ============================================================================


@pytest.fixture
def respx_mock():
    """Provide a respx mock router for HTTP mocking.

    Use this when you need fine-grained control over mocked responses.
    The mock is automatically started and stopped by respx.
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def eth_call_router(respx_mock) -> EthCallRouter:
    """Route every JSON-RPC POST to the test endpoint through an EthCallRouter."""
    router = EthCallRouter()
    respx_mock.post(url__startswith=RPC_URL).mock(side_effect=router)
    return router


# ============================================================================
# Provider Configuration Fixtures
# ============================================================================


@pytest.fixture
def provider_config() -> ProviderConfig:
    """Create a provider config pointing at the mocked RPC endpoint."""
    return ProviderConfig(
        base_url=RPC_URL,
        api_key="test-api-key",
        timeout=5.0,
        rate_limit=RateLimitConfig(
            requests_per_second=1000.0,  # High limit for tests
            burst_size=10,
            retry_on_429=True,
            max_429_retries=2,
            max_backoff=0.01,
        ),
    )


@pytest.fixture
def fast_config() -> ProviderConfig:
    """Provider config keeping the default endpoint but a relaxed rate limit."""
    return ProviderConfig(
        api_key="test-api-key",
        rate_limit=RateLimitConfig(requests_per_second=1000.0, burst_size=20, max_backoff=0.01),
    )
