"""CiFi identity platform provider."""

from __future__ import annotations

from typing import Any, ClassVar

from omniname.core.models import NameRecords, ResolutionResult
from omniname.core.normalization import get_tld
from omniname.core.types import ProviderName

from .base import HttpProvider, ProviderConfig


class CiFiProvider(HttpProvider):
    """
    CiFi identity API resolver (universal fallback).

    Handles ``@alice``, ``alice.cifi`` and bare ``alice`` usernames. A
    profile's linked wallets give per-chain addresses; without a chain
    selector the profile's primary address is returned.

    Requires API key.
    """

    PROVIDER_ID: ClassVar[str] = ProviderName.CIFI
    SUPPORTED_SUFFIXES: ClassVar[tuple[str, ...]] = (".cifi",)
    SUPPORTED_PREFIXES: ClassVar[tuple[str, ...]] = ("@",)
    SUPPORTS_REVERSE: ClassVar[bool] = True

    BASE_URL: ClassVar[str] = "https://api.cifi.network"

    def __init__(self, config: ProviderConfig | None = None, provider_id: str | None = None) -> None:
        super().__init__(config, provider_id)
        if not config or not config.api_key:
            raise ValueError("CiFi requires an API key")
        self._api_key = config.api_key

    def _get_default_headers(self) -> dict[str, str]:
        headers = super()._get_default_headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def can_resolve(self, name: str) -> bool:
        return super().can_resolve(name) or (get_tld(name) is None and bool(self.username_of(name)))

    @staticmethod
    def username_of(name: str) -> str:
        """``@alice`` / ``alice.cifi`` / ``alice`` -> ``alice``."""
        username = name.removeprefix("@")
        return username.removesuffix(".cifi").lower()

    async def resolve(
        self,
        name: str,
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> ResolutionResult | None:
        profile = await self._get_profile(self.username_of(name))
        if profile is None:
            return None

        address: str | None = None
        if chain_id is not None:
            wallets = await self._get_linked_addresses(profile["userId"])
            matching = [w for w in wallets if w.get("chainId") == chain_id]
            chosen = matching or wallets
            if chosen:
                address = chosen[0].get("address")
        else:
            address = profile.get("primaryAddress")

        if not address:
            return None
        return self._result(name, address, chain_id, coin_type)

    async def reverse_resolve(self, address: str, chain_id: int | None = None) -> str | None:
        params: dict[str, Any] = {"address": address}
        if chain_id is not None:
            params["chainId"] = chain_id

        data = await self._get_json("/v1/identity/profiles", params=params)
        if isinstance(data, dict):
            data = data.get("profiles", [data])
        if not data:
            return None

        profile = data[0]
        username = profile.get("username") or profile.get("userId")
        return f"@{username}" if username else None

    async def get_records(self, name: str) -> NameRecords | None:
        profile = await self._get_profile(self.username_of(name))
        if profile is None:
            return None

        wallets = await self._get_linked_addresses(profile["userId"])
        addresses = {
            int(w["chainId"]): w["address"] for w in wallets if w.get("address") and "chainId" in w
        }

        texts: dict[str, str] = {}
        for key in ("username", "email"):
            if profile.get(key):
                texts[key] = profile[key]

        return NameRecords(
            primary_address=profile.get("primaryAddress"),
            addresses=addresses,
            text_records=texts,
            owner=profile.get("primaryAddress"),
            source_provider_id=self.id,
        )

    async def _get_profile(self, username: str) -> dict[str, Any] | None:
        if not username:
            return None
        data = await self._get_json(f"/v1/identity/profiles/{username}")
        if not isinstance(data, dict) or not data.get("userId"):
            return None
        return data

    async def _get_linked_addresses(self, user_id: str) -> list[dict[str, Any]]:
        data = await self._get_json(f"/v1/identity/profiles/{user_id}/addresses")
        if data is None:
            return []
        wallets = data.get("addresses", []) if isinstance(data, dict) else data
        return [w for w in wallets if isinstance(w, dict)]
