"""Sui Name Service provider over the Sui JSON-RPC API."""

from __future__ import annotations

from typing import ClassVar

from omniname.core.models import ResolutionResult
from omniname.core.types import CoinType, ProviderName

from .base import HttpProvider


class SuiNsProvider(HttpProvider):
    """Resolves ``.sui`` names with the fullnode name service methods."""

    PROVIDER_ID: ClassVar[str] = ProviderName.SUINS
    SUPPORTED_SUFFIXES: ClassVar[tuple[str, ...]] = (".sui",)
    SUPPORTS_REVERSE: ClassVar[bool] = True

    BASE_URL: ClassVar[str] = "https://fullnode.mainnet.sui.io"

    async def resolve(
        self,
        name: str,
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> ResolutionResult | None:
        address = await self._json_rpc("suix_resolveNameServiceAddress", [name])
        if not address:
            return None
        return self._result(name, address, chain_id, coin_type or int(CoinType.SUI))

    async def reverse_resolve(self, address: str, chain_id: int | None = None) -> str | None:
        result = await self._json_rpc("suix_resolveNameServiceNames", [address, None, 1])
        names = result.get("data", []) if isinstance(result, dict) else result or []
        return names[0] if names else None
