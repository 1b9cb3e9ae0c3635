"""Ethereum Name Service provider."""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from omniname.core.exceptions import ProviderError
from omniname.core.models import NameRecords, ResolutionResult
from omniname.core.namehash import namehash, reverse_node_name
from omniname.core.types import CoinType, ProviderName

from .base import HttpProvider, ProviderConfig
from .multicall import Call, Multicall

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

RESOLVER_SELECTOR = function_signature_to_4byte_selector("resolver(bytes32)")
ADDR_SELECTOR = function_signature_to_4byte_selector("addr(bytes32)")
ADDR_COIN_SELECTOR = function_signature_to_4byte_selector("addr(bytes32,uint256)")
NAME_SELECTOR = function_signature_to_4byte_selector("name(bytes32)")
TEXT_SELECTOR = function_signature_to_4byte_selector("text(bytes32,string)")
CONTENTHASH_SELECTOR = function_signature_to_4byte_selector("contenthash(bytes32)")


class EnsProvider(HttpProvider):
    """
    Resolves ENS-compatible names through registry and resolver contracts.

    Lookups go registry ``resolver(node)`` then resolver ``addr(node)``.
    Batches use Multicall3 so a whole batch costs two RPC round trips. A
    name whose batched response is undecodable is omitted from the batch
    result rather than failing the other names.
    """

    PROVIDER_ID: ClassVar[str] = ProviderName.ENS
    SUPPORTED_SUFFIXES: ClassVar[tuple[str, ...]] = (".eth",)
    SUPPORTS_REVERSE: ClassVar[bool] = True
    SUPPORTS_BATCH: ClassVar[bool] = True

    BASE_URL: ClassVar[str] = "https://eth.llamarpc.com"
    REGISTRY_ADDRESS: ClassVar[str] = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"
    CHAIN_ID: ClassVar[int] = 1

    TEXT_KEYS: ClassVar[tuple[str, ...]] = (
        "avatar",
        "email",
        "url",
        "description",
        "com.twitter",
        "com.github",
    )

    def __init__(
        self,
        config: ProviderConfig | None = None,
        provider_id: str | None = None,
        *,
        multicall_batch_size: int = 100,
    ) -> None:
        super().__init__(config, provider_id)
        self._multicall = Multicall(self.eth_call, batch_size=multicall_batch_size)

    @property
    def chain_id(self) -> int:
        return self.CHAIN_ID

    # Forward resolution

    async def resolve(
        self,
        name: str,
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> ResolutionResult | None:
        node = namehash(name)

        resolver = await self._get_resolver(node)
        if resolver is None:
            return None

        raw = await self.eth_call(resolver, self._addr_calldata(node, coin_type))
        address = self._decode_addr(raw, coin_type)
        if address is None:
            return None

        return self._result(name, address, chain_id or self.chain_id, coin_type)

    async def resolve_batch(
        self,
        names: list[str],
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> dict[str, ResolutionResult | None]:
        if not names:
            return {}

        nodes = {name: namehash(name) for name in names}

        resolver_calls = [
            Call(self.REGISTRY_ADDRESS, RESOLVER_SELECTOR + encode(["bytes32"], [node]))
            for node in nodes.values()
        ]
        resolver_results = await self._multicall.aggregate(resolver_calls)

        # Names whose response cannot be decoded are left out of the mapping
        results: dict[str, ResolutionResult | None] = {name: None for name in names}

        resolvers: dict[str, str] = {}
        for name, outcome in zip(nodes, resolver_results):
            if not outcome.success:
                continue
            try:
                address = self._decode_address(outcome.data)
            except ProviderError as e:
                logger.warning("%s could not read the resolver of %s: %s", self.id, name, e)
                del results[name]
                continue
            if address is not None:
                resolvers[name] = address

        if not resolvers:
            return results

        addr_calls = [
            Call(resolver, self._addr_calldata(nodes[name], coin_type))
            for name, resolver in resolvers.items()
        ]
        addr_results = await self._multicall.aggregate(addr_calls)

        for name, outcome in zip(resolvers, addr_results):
            if not outcome.success:
                continue
            try:
                address = self._decode_addr(outcome.data, coin_type)
            except ProviderError as e:
                logger.warning("%s could not read the address of %s: %s", self.id, name, e)
                del results[name]
                continue
            if address is not None:
                results[name] = self._result(name, address, chain_id or self.chain_id, coin_type)

        logger.debug(
            "%s batch resolved %d/%d names",
            self.id,
            sum(1 for r in results.values() if r is not None),
            len(names),
        )
        return results

    # Reverse resolution

    async def reverse_resolve(self, address: str, chain_id: int | None = None) -> str | None:
        node = namehash(reverse_node_name(address))

        resolver = await self._get_resolver(node)
        if resolver is None:
            return None

        raw = await self.eth_call(resolver, NAME_SELECTOR + encode(["bytes32"], [node]))
        name = self._decode_single("string", raw)
        return name or None

    # Records

    async def get_records(self, name: str) -> NameRecords | None:
        node = namehash(name)

        resolver = await self._get_resolver(node)
        if resolver is None:
            return None

        calls = [Call(resolver, ADDR_SELECTOR + encode(["bytes32"], [node]))]
        calls.extend(
            Call(resolver, TEXT_SELECTOR + encode(["bytes32", "string"], [node, key]))
            for key in self.TEXT_KEYS
        )
        calls.append(Call(resolver, CONTENTHASH_SELECTOR + encode(["bytes32"], [node])))

        outcomes = await self._multicall.aggregate(calls)
        addr_outcome, *text_outcomes, hash_outcome = outcomes

        address = self._decode_address(addr_outcome.data) if addr_outcome.success else None

        texts: dict[str, str] = {}
        for key, outcome in zip(self.TEXT_KEYS, text_outcomes):
            if outcome.success:
                value = self._decode_single("string", outcome.data)
                if value:
                    texts[key] = value

        content_hash = None
        if hash_outcome.success:
            raw_hash = self._decode_single("bytes", hash_outcome.data)
            if raw_hash:
                content_hash = "0x" + raw_hash.hex()

        if address is None and not texts and content_hash is None:
            return None

        return NameRecords(
            primary_address=address,
            addresses={int(CoinType.ETH): address} if address else {},
            text_records=texts,
            avatar_url=texts.get("avatar"),
            content_hash=content_hash,
            source_provider_id=self.id,
        )

    # Internal helpers

    async def _get_resolver(self, node: bytes) -> str | None:
        """Resolver contract registered for a node, or None."""
        raw = await self.eth_call(
            self.REGISTRY_ADDRESS, RESOLVER_SELECTOR + encode(["bytes32"], [node])
        )
        return self._decode_address(raw)

    @staticmethod
    def _addr_calldata(node: bytes, coin_type: int | None) -> bytes:
        if coin_type is None or coin_type == CoinType.ETH:
            return ADDR_SELECTOR + encode(["bytes32"], [node])
        return ADDR_COIN_SELECTOR + encode(["bytes32", "uint256"], [node, coin_type])

    def _decode_addr(self, raw: bytes, coin_type: int | None) -> str | None:
        if coin_type is None or coin_type == CoinType.ETH:
            return self._decode_address(raw)

        value = self._decode_single("bytes", raw)
        if not value:
            return None
        if len(value) == 20:
            return to_checksum_address(value)
        return "0x" + value.hex()

    def _decode_address(self, raw: bytes) -> str | None:
        address = self._decode_single("address", raw)
        if address is None or address == ZERO_ADDRESS:
            return None
        return to_checksum_address(address)

    def _decode_single(self, abi_type: str, raw: bytes) -> Any:
        """Decode one ABI value; None when the call returned no data."""
        if not raw:
            return None
        try:
            (value,) = decode([abi_type], raw)
        except DecodingError as e:
            raise ProviderError(
                f"Could not decode {abi_type} from {self.id}: {e}",
                provider_id=self.id,
            ) from e
        return value

