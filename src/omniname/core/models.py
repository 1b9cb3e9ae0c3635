"""Domain models for name resolution."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from .types import AttemptOutcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResolutionResult(BaseModel):
    """Address a name resolved to, attributed to the provider that answered."""

    model_config = ConfigDict(frozen=True)

    resolved_address: str = Field(..., description="Resolved on-chain address")
    source_provider_id: str = Field(..., description="Provider that produced the result")
    name: str | None = Field(default=None, description="Normalized name that was resolved")
    chain_id: int | None = Field(default=None, description="Chain the address is valid on")
    coin_type: int | None = Field(default=None, description="SLIP-0044 coin type")
    resolved_at: datetime = Field(default_factory=_utcnow, description="When it was resolved")


class NameRecords(BaseModel):
    """All records associated with a name."""

    model_config = ConfigDict(frozen=True)

    primary_address: str | None = Field(default=None, description="Primary address")
    addresses: dict[int, str] = Field(
        default_factory=dict, description="Coin type to address"
    )
    text_records: dict[str, str] = Field(default_factory=dict, description="Text records")
    avatar_url: str | None = Field(default=None, description="Avatar URL or reference")
    content_hash: str | None = Field(default=None, description="Content hash (IPFS, Arweave)")
    owner: str | None = Field(default=None, description="Owner address")
    source_provider_id: str | None = Field(default=None, description="Provider that answered")

    def get_text(self, key: str) -> str | None:
        """Return a text record by key."""
        return self.text_records.get(key)

    def address_for(self, coin_type: int) -> str | None:
        """Return the address recorded for a coin type."""
        return self.addresses.get(int(coin_type))


class ProviderAttempt(BaseModel):
    """Outcome of one provider invocation during a resolution."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    outcome: AttemptOutcome
    error_message: str | None = None
    duration_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return self.outcome in (AttemptOutcome.ERROR, AttemptOutcome.TIMEOUT)


class ResolutionTrace(BaseModel):
    """Verbose resolution outcome including every provider attempt."""

    name: str
    normalized_name: str
    result: ResolutionResult | None = None
    attempts: list[ProviderAttempt] = Field(default_factory=list)
    cache_hit: bool = False

    @property
    def success(self) -> bool:
        return self.result is not None

    @property
    def failures(self) -> list[ProviderAttempt]:
        """Attempts that errored or timed out."""
        return [a for a in self.attempts if a.failed]

    @property
    def providers_tried(self) -> list[str]:
        return [a.provider_id for a in self.attempts if a.outcome != AttemptOutcome.SKIPPED]


class CacheStats(BaseModel):
    """Resolution cache statistics."""

    model_config = ConfigDict(frozen=True)

    hits: int = 0
    misses: int = 0
    size: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


@dataclass
class ProviderStats:
    """Running counters for a single provider."""

    successes: int = 0
    no_records: int = 0
    errors: int = 0
    timeouts: int = 0
    total_latency_ms: float = 0.0

    @property
    def attempts(self) -> int:
        return self.successes + self.no_records + self.errors + self.timeouts

    @property
    def average_latency_ms(self) -> float:
        return self.total_latency_ms / self.attempts if self.attempts else 0.0

    def record(self, attempt: ProviderAttempt) -> None:
        """Fold an attempt into the counters."""
        match attempt.outcome:
            case AttemptOutcome.SUCCESS:
                self.successes += 1
            case AttemptOutcome.NO_RECORD:
                self.no_records += 1
            case AttemptOutcome.ERROR:
                self.errors += 1
            case AttemptOutcome.TIMEOUT:
                self.timeouts += 1
            case _:
                return
        self.total_latency_ms += attempt.duration_ms


@dataclass(frozen=True)
class ResolveOptions:
    """Per-call resolution options."""

    # Explicit chain selector and SLIP-0044 coin type
    chain_id: int | None = None
    coin_type: int | None = None

    # Skip the cache lookup (successful results are still written back)
    bypass_cache: bool = False

    # Consider every provider whose pattern check accepts the name
    exhaustive: bool = False

    # Batch cancellation signal; no new provider calls once it is set
    cancel_event: asyncio.Event | None = field(default=None, compare=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()
