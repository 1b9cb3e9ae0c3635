"""Unstoppable Domains provider."""

from __future__ import annotations

from typing import ClassVar

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector

from omniname.core.exceptions import ProviderError
from omniname.core.models import NameRecords, ResolutionResult
from omniname.core.namehash import namehash
from omniname.core.types import CoinType, ProviderName

from .base import HttpProvider, ProviderConfig
from .multicall import Call, Multicall

GET_SELECTOR = function_signature_to_4byte_selector("get(string,uint256)")

POLYGON_CHAIN_ID = 137
ETHEREUM_CHAIN_ID = 1

REGISTRY_ADDRESSES: dict[int, str] = {
    POLYGON_CHAIN_ID: "0xa9a6A3626993D487d2Dbda3173cf58cA1a9D9e9f",
    ETHEREUM_CHAIN_ID: "0x049aba7510f45BA5b64ea9E658E342F904DB358D",
}

# Coin type -> record key
ADDRESS_RECORD_KEYS: dict[int, str] = {
    CoinType.ETH: "crypto.ETH.address",
    CoinType.BTC: "crypto.BTC.address",
    CoinType.SOL: "crypto.SOL.address",
    CoinType.MATIC: "crypto.MATIC.address",
}

# Record key -> text record name
TEXT_RECORD_KEYS: dict[str, str] = {
    "whois.email.value": "email",
    "whois.for_sale.value": "url",
    "social.twitter.username": "com.twitter",
    "browser.redirect_url": "browser.redirect_url",
}

AVATAR_KEY = "social.picture.value"
CONTENT_HASH_KEY = "ipfs.html.value"


def record_key_for(coin_type: int | None) -> str:
    """Registry record key holding the address for a coin type."""
    if coin_type is None:
        return ADDRESS_RECORD_KEYS[CoinType.ETH]
    return ADDRESS_RECORD_KEYS.get(coin_type, f"crypto.{coin_type}.address")


class UnstoppableProvider(HttpProvider):
    """
    Resolves Unstoppable Domains names by reading registry records.

    Records are read with ``get(key, tokenId)`` where the token id is the
    integer value of the name's namehash. There is no on-chain reverse
    lookup, so reverse resolution is unsupported.
    """

    PROVIDER_ID: ClassVar[str] = ProviderName.UNSTOPPABLE
    SUPPORTED_SUFFIXES: ClassVar[tuple[str, ...]] = (
        ".crypto",
        ".nft",
        ".wallet",
        ".x",
        ".bitcoin",
        ".dao",
        ".888",
        ".zil",
        ".blockchain",
    )

    BASE_URL: ClassVar[str] = "https://polygon-rpc.com"

    def __init__(
        self,
        config: ProviderConfig | None = None,
        provider_id: str | None = None,
        *,
        chain_id: int = POLYGON_CHAIN_ID,
    ) -> None:
        super().__init__(config, provider_id)
        if chain_id not in REGISTRY_ADDRESSES:
            raise ValueError(f"Unsupported Unstoppable Domains chain: {chain_id}")
        self.chain_id = chain_id
        self.registry_address = REGISTRY_ADDRESSES[chain_id]
        self._multicall = Multicall(self.eth_call)

    async def resolve(
        self,
        name: str,
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> ResolutionResult | None:
        token_id = self.token_id(name)
        raw = await self.eth_call(self.registry_address, self._get_calldata(record_key_for(coin_type), token_id))
        address = self._decode_string(raw)
        if not address:
            return None
        return self._result(name, address, chain_id or self.chain_id, coin_type)

    async def get_records(self, name: str) -> NameRecords | None:
        token_id = self.token_id(name)

        keys = [
            *ADDRESS_RECORD_KEYS.values(),
            *TEXT_RECORD_KEYS,
            AVATAR_KEY,
            CONTENT_HASH_KEY,
        ]
        calls = [Call(self.registry_address, self._get_calldata(key, token_id)) for key in keys]
        outcomes = await self._multicall.aggregate(calls)

        values: dict[str, str] = {}
        for key, outcome in zip(keys, outcomes):
            if outcome.success:
                value = self._decode_string(outcome.data)
                if value:
                    values[key] = value

        if not values:
            return None

        addresses = {
            int(coin): values[key] for coin, key in ADDRESS_RECORD_KEYS.items() if key in values
        }
        texts = {label: values[key] for key, label in TEXT_RECORD_KEYS.items() if key in values}

        return NameRecords(
            primary_address=addresses.get(int(CoinType.ETH)),
            addresses=addresses,
            text_records=texts,
            avatar_url=values.get(AVATAR_KEY),
            content_hash=values.get(CONTENT_HASH_KEY),
            source_provider_id=self.id,
        )

    @staticmethod
    def token_id(name: str) -> int:
        """ERC-721 token id of a domain."""
        return int.from_bytes(namehash(name), "big")

    @staticmethod
    def _get_calldata(key: str, token_id: int) -> bytes:
        return GET_SELECTOR + encode(["string", "uint256"], [key, token_id])

    def _decode_string(self, raw: bytes) -> str | None:
        if not raw:
            return None
        try:
            (value,) = decode(["string"], raw)
        except DecodingError as e:
            raise ProviderError(f"Could not decode record from {self.id}", provider_id=self.id) from e
        return value or None
