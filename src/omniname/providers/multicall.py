"""Multicall3 ``aggregate3`` batching for EVM read calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_canonical_address

MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

AGGREGATE3_SELECTOR = function_signature_to_4byte_selector("aggregate3((address,bool,bytes)[])")


@dataclass(frozen=True)
class Call:
    """A single contract read inside a multicall."""

    target: str
    data: bytes
    allow_failure: bool = True


@dataclass(frozen=True)
class CallResult:
    success: bool
    data: bytes


def encode_aggregate3(calls: list[Call]) -> bytes:
    """Calldata for ``aggregate3`` over the given calls."""
    payload = [(to_canonical_address(call.target), call.allow_failure, call.data) for call in calls]
    return AGGREGATE3_SELECTOR + encode(["(address,bool,bytes)[]"], [payload])


def decode_aggregate3(raw: bytes) -> list[CallResult]:
    """Decode the ``(bool,bytes)[]`` return value of ``aggregate3``."""
    (results,) = decode(["(bool,bytes)[]"], raw)
    return [CallResult(success=bool(ok), data=bytes(data)) for ok, data in results]


EthCall = Callable[[str, bytes], Awaitable[bytes]]


class Multicall:
    """
    Runs many read calls through Multicall3 in chunks.

    ``eth_call`` is the transport; one RPC round trip is made per chunk.
    """

    def __init__(
        self,
        eth_call: EthCall,
        address: str = MULTICALL3_ADDRESS,
        batch_size: int = 100,
    ) -> None:
        self._eth_call = eth_call
        self.address = address
        self.batch_size = max(1, batch_size)

    async def aggregate(self, calls: list[Call]) -> list[CallResult]:
        """Execute calls, returning results in input order."""
        results: list[CallResult] = []
        for start in range(0, len(calls), self.batch_size):
            chunk = calls[start : start + self.batch_size]
            raw = await self._eth_call(self.address, encode_aggregate3(chunk))
            decoded = decode_aggregate3(raw)
            if len(decoded) != len(chunk):
                raise DecodingError(
                    f"Multicall returned {len(decoded)} results for {len(chunk)} calls"
                )
            results.extend(decoded)
        return results
