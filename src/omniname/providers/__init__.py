"""Naming authority providers."""

from .base import (
    AsyncRateLimiter,
    HttpProvider,
    NameProvider,
    ProviderConfig,
    RateLimitConfig,
)
from .cifi import CiFiProvider
from .ens import EnsProvider
from .multicall import Call, CallResult, Multicall
from .sns import SnsProvider
from .spaceid import SpaceIdArbitrumProvider, SpaceIdProvider
from .suins import SuiNsProvider
from .unstoppable import UnstoppableProvider

__all__ = [
    # Base
    "AsyncRateLimiter",
    "HttpProvider",
    "NameProvider",
    "ProviderConfig",
    "RateLimitConfig",
    # Multicall
    "Call",
    "CallResult",
    "Multicall",
    # Providers
    "CiFiProvider",
    "EnsProvider",
    "SnsProvider",
    "SpaceIdArbitrumProvider",
    "SpaceIdProvider",
    "SuiNsProvider",
    "UnstoppableProvider",
]
