"""Library configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from omniname.core.types import CacheBackend


class OmninameSettings(BaseSettings):
    """Configuration from ``OMNINAME_``-prefixed environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="OMNINAME_",
        extra="ignore",
    )

    # Cache
    cache_backend: CacheBackend = Field(
        default=CacheBackend.MEMORY,
        description="Resolution cache backend (memory or redis)",
    )
    redis_url: RedisDsn | None = Field(
        default=None,
        description="Redis connection URL (required for the redis backend)",
    )
    cache_ttl: int = Field(
        default=3600,
        gt=0,
        description="Seconds a successful resolution stays cached",
    )
    cache_max_size: int = Field(
        default=10_000,
        ge=1,
        description="Maximum entries held by the in-memory cache",
    )

    # Resolution
    attempt_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single provider call in seconds",
    )
    batch_concurrency: int = Field(
        default=16,
        ge=1,
        description="Provider calls in flight during batch resolution",
    )
    address_passthrough: bool = Field(
        default=True,
        description="Resolve raw EVM and Sui addresses to themselves",
    )
    multicall_batch_size: int = Field(
        default=100,
        ge=1,
        description="Calls per Multicall3 request",
    )

    # RPC endpoints
    eth_rpc_url: str = Field(
        default="https://eth.llamarpc.com",
        description="Ethereum JSON-RPC endpoint (ENS)",
    )
    polygon_rpc_url: str = Field(
        default="https://polygon-rpc.com",
        description="Polygon JSON-RPC endpoint (Unstoppable Domains)",
    )
    bnb_rpc_url: str = Field(
        default="https://bsc-dataseed.bnbchain.org",
        description="BNB Chain JSON-RPC endpoint (SPACE ID .bnb)",
    )
    arbitrum_rpc_url: str | None = Field(
        default=None,
        description="Arbitrum JSON-RPC endpoint (SPACE ID .arb, optional)",
    )
    sns_proxy_url: str = Field(
        default="https://sdk-proxy.sns.id",
        description="Solana Name Service SDK proxy",
    )
    sui_rpc_url: str = Field(
        default="https://fullnode.mainnet.sui.io",
        description="Sui fullnode JSON-RPC endpoint (SuiNS)",
    )

    # CiFi
    cifi_api_key: str | None = Field(
        default=None,
        description="CiFi API key (enables the @username fallback provider)",
    )
    cifi_base_url: str = Field(
        default="https://api.cifi.network",
        description="CiFi API base URL",
    )

    # Provider toggles
    enable_ens: bool = Field(default=True, description="Register the ENS provider")
    enable_unstoppable: bool = Field(
        default=True, description="Register the Unstoppable Domains provider"
    )
    enable_spaceid: bool = Field(default=True, description="Register the SPACE ID providers")
    enable_sns: bool = Field(default=True, description="Register the Solana Name Service provider")
    enable_suins: bool = Field(default=True, description="Register the Sui Name Service provider")
    enable_cifi: bool = Field(default=True, description="Register the CiFi provider")

    # Provider HTTP
    provider_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for provider requests in seconds",
    )
    default_rate_limit_rps: float = Field(
        default=10.0,
        gt=0,
        description="Default requests per second for providers",
    )

    # App settings
    debug: bool = Field(
        default=False,
        description="Log at DEBUG regardless of log_level",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )


@lru_cache
def get_settings() -> OmninameSettings:
    """Get cached settings instance."""
    return OmninameSettings()
