"""Solana Name Service provider backed by the SNS SDK proxy."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, ClassVar

from omniname.core.models import NameRecords, ResolutionResult
from omniname.core.normalization import strip_suffix
from omniname.core.types import CoinType, ProviderName

from .base import HttpProvider

logger = logging.getLogger(__name__)

# SNS record name -> text record key
TEXT_RECORDS: dict[str, str] = {
    "url": "url",
    "email": "email",
    "twitter": "com.twitter",
    "github": "com.github",
    "discord": "com.discord",
    "telegram": "org.telegram",
}

AVATAR_RECORD = "pic"
CONTENT_RECORD = "IPFS"


class SnsProvider(HttpProvider):
    """
    Resolves ``.sol`` names through the SNS SDK proxy.

    Proxy responses look like ``{"s": "ok", "result": ...}``; any other
    status means the name has no record.
    """

    PROVIDER_ID: ClassVar[str] = ProviderName.SNS
    SUPPORTED_SUFFIXES: ClassVar[tuple[str, ...]] = (".sol",)
    SUPPORTS_REVERSE: ClassVar[bool] = True

    BASE_URL: ClassVar[str] = "https://sdk-proxy.sns.id"

    async def resolve(
        self,
        name: str,
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> ResolutionResult | None:
        address = await self._proxy_get(f"/resolve/{strip_suffix(name, '.sol')}")
        if not isinstance(address, str) or not address:
            return None
        return self._result(name, address, chain_id, coin_type or int(CoinType.SOL))

    async def reverse_resolve(self, address: str, chain_id: int | None = None) -> str | None:
        result = await self._proxy_get(f"/favorite-domain/{address}")
        if isinstance(result, dict):
            result = result.get("reverse") or result.get("domain")
        if not isinstance(result, str) or not result:
            return None
        return result if result.endswith(".sol") else f"{result}.sol"

    async def get_records(self, name: str) -> NameRecords | None:
        domain = strip_suffix(name, ".sol")
        owner = await self._proxy_get(f"/resolve/{domain}")
        if not isinstance(owner, str) or not owner:
            return None

        record_names = [*TEXT_RECORDS, AVATAR_RECORD, CONTENT_RECORD]
        values = await asyncio.gather(
            *(self._get_record(domain, record) for record in record_names)
        )
        found = {record: value for record, value in zip(record_names, values) if value}

        return NameRecords(
            primary_address=owner,
            addresses={int(CoinType.SOL): owner},
            text_records={key: found[record] for record, key in TEXT_RECORDS.items() if record in found},
            avatar_url=found.get(AVATAR_RECORD),
            content_hash=found.get(CONTENT_RECORD),
            owner=owner,
            source_provider_id=self.id,
        )

    async def _get_record(self, domain: str, record: str) -> str | None:
        result = await self._proxy_get(f"/record/{domain}/{record}")
        if isinstance(result, dict):
            result = result.get("deserialized") or result.get("value")
        return result if isinstance(result, str) and result else None

    async def _proxy_get(self, path: str) -> Any:
        """Payload of an ``ok`` proxy response, otherwise None."""
        body = await self._get_json(path)
        if not isinstance(body, dict) or body.get("s") != "ok":
            logger.debug("SNS proxy returned no result for %s", path)
            return None
        return body.get("result")
