"""SPACE ID providers for ``.bnb`` and ``.arb`` names."""

from typing import ClassVar

from omniname.core.types import ProviderName

from .ens import EnsProvider


class SpaceIdProvider(EnsProvider):
    """SPACE ID names on BNB Chain, served by an ENS-compatible registry."""

    PROVIDER_ID: ClassVar[str] = ProviderName.SPACE_ID
    SUPPORTED_SUFFIXES: ClassVar[tuple[str, ...]] = (".bnb",)

    BASE_URL: ClassVar[str] = "https://bsc-dataseed.bnbchain.org"
    REGISTRY_ADDRESS: ClassVar[str] = "0x08CEd32a7f3eeC915Ba84415e9C07a7286977956"
    CHAIN_ID: ClassVar[int] = 56

    TEXT_KEYS: ClassVar[tuple[str, ...]] = (
        "avatar",
        "email",
        "url",
        "description",
        "com.twitter",
    )


class SpaceIdArbitrumProvider(SpaceIdProvider):
    """SPACE ID names on Arbitrum One."""

    PROVIDER_ID: ClassVar[str] = "spaceid-arb"
    SUPPORTED_SUFFIXES: ClassVar[tuple[str, ...]] = (".arb",)

    BASE_URL: ClassVar[str] = "https://arb1.arbitrum.io/rpc"
    REGISTRY_ADDRESS: ClassVar[str] = "0x4a067EE58e73ac5E4a43722E008DFdf65B2bF348"
    CHAIN_ID: ClassVar[int] = 42161
