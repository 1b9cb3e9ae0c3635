"""Tests for the Unstoppable Domains provider."""

from __future__ import annotations

import pytest
from chain_mocks import EthCallRouter
from eth_abi import encode
from stubs import VITALIK

from omniname.core.namehash import namehash
from omniname.core.types import CoinType, ProviderName
from omniname.providers.base import ProviderConfig
from omniname.providers.unstoppable import (
    AVATAR_KEY,
    GET_SELECTOR,
    REGISTRY_ADDRESSES,
    UnstoppableProvider,
    record_key_for,
)

SOL_ADDRESS = "HN7cABqLq46Es1jh92dQQisAq662SmxELLLsHHe4YWrH"


@pytest.fixture
def unstoppable(provider_config: ProviderConfig) -> UnstoppableProvider:
    return UnstoppableProvider(provider_config)


def add_record(
    router: EthCallRouter, provider: UnstoppableProvider, name: str, key: str, value: str
) -> None:
    token_id = int.from_bytes(namehash(name), "big")
    calldata = GET_SELECTOR + encode(["string", "uint256"], [key, token_id])
    router.add(provider.registry_address, calldata, ["string"], [value])


class TestUnstoppableConfig:
    """Tests for Unstoppable Domains configuration."""

    def test_identity(self, unstoppable: UnstoppableProvider):
        assert unstoppable.id == ProviderName.UNSTOPPABLE
        assert not unstoppable.supports_reverse
        assert unstoppable.chain_id == 137

    @pytest.mark.parametrize("name", ["brad.crypto", "a.nft", "b.x", "c.wallet", "d.blockchain"])
    def test_can_resolve(self, unstoppable: UnstoppableProvider, name: str):
        assert unstoppable.can_resolve(name)

    def test_rejects_other_tlds(self, unstoppable: UnstoppableProvider):
        assert not unstoppable.can_resolve("vitalik.eth")

    def test_ethereum_registry(self):
        provider = UnstoppableProvider(chain_id=1)
        assert provider.registry_address == REGISTRY_ADDRESSES[1]

    def test_unknown_chain(self):
        with pytest.raises(ValueError):
            UnstoppableProvider(chain_id=56)

    def test_token_id_is_namehash(self):
        assert UnstoppableProvider.token_id("brad.crypto") == int.from_bytes(
            namehash("brad.crypto"), "big"
        )

    @pytest.mark.parametrize(
        "coin_type,expected",
        [
            (None, "crypto.ETH.address"),
            (CoinType.ETH, "crypto.ETH.address"),
            (CoinType.SOL, "crypto.SOL.address"),
            (12345, "crypto.12345.address"),
        ],
    )
    def test_record_keys(self, coin_type: int | None, expected: str):
        assert record_key_for(coin_type) == expected


class TestUnstoppableResolve:
    """Tests for forward resolution."""

    async def test_resolves_eth_address(
        self, unstoppable: UnstoppableProvider, eth_call_router: EthCallRouter
    ):
        add_record(eth_call_router, unstoppable, "brad.crypto", "crypto.ETH.address", VITALIK)

        result = await unstoppable.resolve("brad.crypto")

        assert result is not None
        assert result.resolved_address == VITALIK
        assert result.source_provider_id == "unstoppable"
        assert result.chain_id == 137

    async def test_resolves_coin_type(
        self, unstoppable: UnstoppableProvider, eth_call_router: EthCallRouter
    ):
        add_record(eth_call_router, unstoppable, "brad.crypto", "crypto.SOL.address", SOL_ADDRESS)

        result = await unstoppable.resolve("brad.crypto", coin_type=CoinType.SOL)

        assert result is not None
        assert result.resolved_address == SOL_ADDRESS

    async def test_empty_record(
        self, unstoppable: UnstoppableProvider, eth_call_router: EthCallRouter
    ):
        add_record(eth_call_router, unstoppable, "empty.crypto", "crypto.ETH.address", "")
        assert await unstoppable.resolve("empty.crypto") is None

    async def test_unregistered(
        self, unstoppable: UnstoppableProvider, eth_call_router: EthCallRouter
    ):
        assert await unstoppable.resolve("nobody.crypto") is None

    async def test_reverse_unsupported(self, unstoppable: UnstoppableProvider):
        assert await unstoppable.reverse_resolve(VITALIK) is None


class TestUnstoppableRecords:
    """Tests for record retrieval."""

    async def test_records(
        self, unstoppable: UnstoppableProvider, eth_call_router: EthCallRouter
    ):
        add_record(eth_call_router, unstoppable, "brad.crypto", "crypto.ETH.address", VITALIK)
        add_record(eth_call_router, unstoppable, "brad.crypto", "crypto.SOL.address", SOL_ADDRESS)
        add_record(eth_call_router, unstoppable, "brad.crypto", "social.twitter.username", "brad")
        add_record(eth_call_router, unstoppable, "brad.crypto", AVATAR_KEY, "https://img/b.png")

        records = await unstoppable.get_records("brad.crypto")

        assert records is not None
        assert records.primary_address == VITALIK
        assert records.address_for(CoinType.SOL) == SOL_ADDRESS
        assert records.get_text("com.twitter") == "brad"
        assert records.avatar_url == "https://img/b.png"
        assert records.content_hash is None
        assert eth_call_router.multicall_requests == 1

    async def test_no_records(
        self, unstoppable: UnstoppableProvider, eth_call_router: EthCallRouter
    ):
        assert await unstoppable.get_records("nobody.crypto") is None
