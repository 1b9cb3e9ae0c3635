"""Cache key builders for consistent key formatting."""

from __future__ import annotations

from typing import NamedTuple

from omniname.core.types import CacheKind


class CacheKey(NamedTuple):
    """Structured cache key: (kind, subject, chain selector, coin type)."""

    kind: CacheKind
    subject: str
    chain_id: int | None = None
    coin_type: int | None = None

    def to_string(self, prefix: str = "omniname") -> str:
        """Flat string form used by remote backends."""
        chain = "-" if self.chain_id is None else str(self.chain_id)
        coin = "-" if self.coin_type is None else str(self.coin_type)
        return f"{prefix}:{self.kind}:{self.subject}:{chain}:{coin}"


class CacheKeys:
    """Cache key builders for consistent key formatting."""

    PREFIX = "omniname"

    @classmethod
    def forward(
        cls,
        name: str,
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> CacheKey:
        """Key for a forward resolution of a normalized name."""
        return CacheKey(CacheKind.FORWARD, name, chain_id, coin_type)

    @classmethod
    def reverse(cls, address: str, chain_id: int | None = None) -> CacheKey:
        """Key for a reverse resolution; addresses are compared case-insensitively."""
        return CacheKey(CacheKind.REVERSE, address.strip().lower(), chain_id, None)

    @classmethod
    def records(cls, name: str) -> CacheKey:
        """Key for the full record set of a normalized name."""
        return CacheKey(CacheKind.RECORDS, name, None, None)

    @classmethod
    def to_string(cls, key: CacheKey) -> str:
        return key.to_string(cls.PREFIX)

    @classmethod
    def subject_pattern(cls, subject: str) -> str:
        """Glob matching every key of a subject, across kinds and selectors."""
        return f"{cls.PREFIX}:*:{subject}:*"
