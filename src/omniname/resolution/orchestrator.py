"""Name resolution orchestrator: cache, routing and provider waterfall."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from omniname.cache.keys import CacheKey, CacheKeys
from omniname.cache.memory import ResolutionCache, ResolutionCacheBackend
from omniname.core.clock import Clock, SystemClock
from omniname.core.exceptions import CacheError, ProviderError, ProviderTimeoutError
from omniname.core.models import (
    CacheStats,
    NameRecords,
    ProviderAttempt,
    ProviderStats,
    ResolutionResult,
    ResolutionTrace,
    ResolveOptions,
)
from omniname.core.normalization import normalize_name
from omniname.core.types import AttemptOutcome
from omniname.detection.address import AddressDetector
from omniname.providers.base import NameProvider

from .batch import BatchPlan, ProviderGroup, address_result, clean_address, group_by_primary
from .router import Router

logger = logging.getLogger(__name__)


@dataclass
class OrchestratorConfig:
    """Configuration for the resolution engine."""

    # Seconds a successful result stays cached
    cache_ttl: float = 3600.0

    # Upper bound for a single provider invocation (seconds)
    attempt_timeout: float = 10.0

    # Provider calls in flight during a batch
    batch_concurrency: int = 16

    # Resolve well-formed raw addresses to themselves
    address_passthrough: bool = True


class NameOrchestrator:
    """
    Resolves names through an ordered provider waterfall.

    Features:
    - Cache lookup before any provider I/O
    - Sequential fallback with per-attempt timeouts
    - Provider failures isolated and reported as attempts
    - Batch resolution with provider-level batching and bounded concurrency
    """

    def __init__(
        self,
        router: Router | None = None,
        cache: ResolutionCacheBackend | None = None,
        clock: Clock | None = None,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._router = router or Router()
        self._cache = cache if cache is not None else ResolutionCache(clock=self._clock)
        self.config = config or OrchestratorConfig()
        self._detector = AddressDetector()
        self._stats: dict[str, ProviderStats] = defaultdict(ProviderStats)

    @property
    def router(self) -> Router:
        return self._router

    @property
    def cache(self) -> ResolutionCacheBackend:
        return self._cache

    def register_provider(
        self,
        provider: NameProvider,
        patterns: Iterable[str] | None = None,
        *,
        fallback: bool = False,
    ) -> None:
        """Add a provider; the route table is rebuilt and swapped in."""
        self._router.register(provider, patterns, fallback=fallback)

    def providers_for(self, name: str, exhaustive: bool = False) -> list[str]:
        """Ids of the providers a name would be tried against, in order."""
        return self._router.candidate_ids_for(normalize_name(name), exhaustive)

    # Forward resolution

    async def resolve(
        self,
        name: str,
        options: ResolveOptions | None = None,
    ) -> ResolutionResult | None:
        """
        Resolve a name to an address.

        Returns None when no provider has a record. Only malformed input
        raises (:class:`InvalidNameFormat`).
        """
        trace = await self.resolve_with_trace(name, options)
        return trace.result

    async def resolve_with_trace(
        self,
        name: str,
        options: ResolveOptions | None = None,
    ) -> ResolutionTrace:
        """Resolve a name and report every provider attempt."""
        options = options or ResolveOptions()
        normalized = normalize_name(name)

        passthrough = self._passthrough(name)
        if passthrough is not None:
            return ResolutionTrace(name=name, normalized_name=normalized, result=passthrough)

        key = CacheKeys.forward(normalized, options.chain_id, options.coin_type)
        if not options.bypass_cache:
            cached = await self._cache_get(key)
            if cached is not None:
                return ResolutionTrace(
                    name=name,
                    normalized_name=normalized,
                    result=cached,
                    cache_hit=True,
                )

        attempts: list[ProviderAttempt] = []
        result = await self._resolve_normalized(normalized, options, attempts)
        return ResolutionTrace(
            name=name,
            normalized_name=normalized,
            result=result,
            attempts=attempts,
        )

    async def _resolve_normalized(
        self,
        normalized: str,
        options: ResolveOptions,
        attempts: list[ProviderAttempt],
        semaphore: asyncio.Semaphore | None = None,
        skip_primary: bool = False,
    ) -> ResolutionResult | None:
        candidates = self._router.candidates_for(normalized, options.exhaustive)
        if skip_primary:
            candidates = candidates[1:]

        if not candidates and not skip_primary:
            logger.debug("No provider routes %s", normalized)
            return None

        result = await self._waterfall(
            candidates,
            lambda p: p.resolve(normalized, options.chain_id, options.coin_type),
            normalized,
            options,
            attempts,
            semaphore,
        )
        if result is not None:
            await self._cache_put(
                CacheKeys.forward(normalized, options.chain_id, options.coin_type), result
            )
        return result

    # Reverse resolution

    async def reverse_resolve(
        self,
        address: str,
        options: ResolveOptions | None = None,
    ) -> str | None:
        """Resolve an address to its primary name."""
        return await self._reverse_one(clean_address(address), options or ResolveOptions())

    async def reverse_resolve_many(
        self,
        addresses: Iterable[str],
        options: ResolveOptions | None = None,
    ) -> dict[str, str | None]:
        """
        Reverse-resolve many addresses under the batch concurrency bound.

        Every address is checked before any I/O. Duplicates are looked up
        once; the output has one key per input.
        """
        options = options or ResolveOptions()
        inputs = {original: clean_address(original) for original in addresses}
        unique = list(dict.fromkeys(inputs.values()))

        semaphore = asyncio.Semaphore(max(1, self.config.batch_concurrency))
        names = await asyncio.gather(
            *(self._reverse_one(address, options, semaphore) for address in unique)
        )
        resolved = dict(zip(unique, names))
        return {original: resolved[address] for original, address in inputs.items()}

    async def _reverse_one(
        self,
        address: str,
        options: ResolveOptions,
        semaphore: asyncio.Semaphore | None = None,
    ) -> str | None:
        key = CacheKeys.reverse(address, options.chain_id)

        if not options.bypass_cache:
            cached = await self._cache_get(key)
            if cached is not None:
                return cached

        name = await self._waterfall(
            self._router.reverse_candidates(),
            lambda p: p.reverse_resolve(address, options.chain_id),
            address,
            options,
            [],
            semaphore,
        )
        if name is not None:
            await self._cache_put(key, name)
        return name

    # Records

    async def get_records(
        self,
        name: str,
        options: ResolveOptions | None = None,
    ) -> NameRecords | None:
        """Fetch every record of a name from the first provider that has them."""
        return await self._records_one(normalize_name(name), options or ResolveOptions())

    async def get_records_many(
        self,
        names: Iterable[str],
        options: ResolveOptions | None = None,
    ) -> dict[str, NameRecords | None]:
        """Fetch records for many names; one key per input, duplicates fetched once."""
        options = options or ResolveOptions()
        plan = BatchPlan.build(list(names))

        semaphore = asyncio.Semaphore(max(1, self.config.batch_concurrency))
        records = await asyncio.gather(
            *(self._records_one(normalized, options, semaphore) for normalized in plan.unique)
        )
        return plan.collect(dict(zip(plan.unique, records)))

    async def _records_one(
        self,
        normalized: str,
        options: ResolveOptions,
        semaphore: asyncio.Semaphore | None = None,
    ) -> NameRecords | None:
        key = CacheKeys.records(normalized)

        if not options.bypass_cache:
            cached = await self._cache_get(key)
            if cached is not None:
                return cached

        records = await self._waterfall(
            self._router.candidates_for(normalized, options.exhaustive),
            lambda p: p.get_records(normalized),
            normalized,
            options,
            [],
            semaphore,
        )
        if records is not None:
            await self._cache_put(key, records)
        return records

    # Batch resolution

    async def resolve_many(
        self,
        names: Iterable[str],
        options: ResolveOptions | None = None,
    ) -> dict[str, ResolutionResult | None]:
        """
        Resolve many names at once.

        Produces, per input, the same value :meth:`resolve` would. Names
        sharing a batch-capable primary provider are resolved with one
        batched call; everything else runs the regular waterfall under
        bounded concurrency. Setting ``options.cancel_event`` stops new
        provider calls; names left unresolved map to None.
        """
        options = options or ResolveOptions()
        plan = BatchPlan.build(
            list(names),
            self._detector if self.config.address_passthrough else None,
        )

        resolved: dict[str, ResolutionResult | None] = {}
        pending: list[str] = []
        for normalized in plan.unique:
            cached = None
            if not options.bypass_cache:
                cached = await self._cache_get(
                    CacheKeys.forward(normalized, options.chain_id, options.coin_type)
                )
            if cached is not None:
                resolved[normalized] = cached
            else:
                pending.append(normalized)

        groups, unroutable = group_by_primary(pending, self._router, options.exhaustive)
        for normalized in unroutable:
            resolved[normalized] = None

        semaphore = asyncio.Semaphore(max(1, self.config.batch_concurrency))
        group_results = await asyncio.gather(
            *(self._resolve_group(group, options, semaphore) for group in groups)
        )
        for group_result in group_results:
            resolved.update(group_result)

        logger.debug(
            "Batch resolved %d/%d names",
            sum(1 for r in resolved.values() if r is not None) + len(plan.passthrough),
            len(plan.inputs),
        )
        return plan.collect(resolved)

    async def _resolve_group(
        self,
        group: ProviderGroup,
        options: ResolveOptions,
        semaphore: asyncio.Semaphore,
    ) -> dict[str, ResolutionResult | None]:
        if not group.batchable:
            values = await asyncio.gather(
                *(self._resolve_normalized(n, options, [], semaphore) for n in group.names)
            )
            return dict(zip(group.names, values))

        provider = group.provider
        batch, attempt = await self._attempt(
            provider,
            lambda: provider.resolve_batch(group.names, options.chain_id, options.coin_type),
            group.names[0] if len(group.names) == 1 else f"{len(group.names)} names",
            options,
            semaphore,
        )

        results: dict[str, ResolutionResult | None] = {}
        continuation: list[str] = []
        for name in group.names:
            result = batch.get(name) if batch else None
            if result is not None:
                results[name] = result
                await self._cache_put(
                    CacheKeys.forward(name, options.chain_id, options.coin_type), result
                )
            elif attempt.outcome != AttemptOutcome.SKIPPED:
                continuation.append(name)
            else:
                results[name] = None

        values = await asyncio.gather(
            *(
                self._resolve_normalized(n, options, [], semaphore, skip_primary=True)
                for n in continuation
            )
        )
        results.update(zip(continuation, values))
        return results

    # Waterfall

    async def _waterfall(
        self,
        candidates: list[NameProvider],
        call: Callable[[NameProvider], Awaitable[Any]],
        subject: str,
        options: ResolveOptions,
        attempts: list[ProviderAttempt],
        semaphore: asyncio.Semaphore | None = None,
    ) -> Any | None:
        """Try candidates in order until one answers."""
        for provider in candidates:
            value, attempt = await self._attempt(
                provider, lambda: call(provider), subject, options, semaphore
            )
            attempts.append(attempt)

            if attempt.outcome == AttemptOutcome.SUCCESS:
                failed = [a.provider_id for a in attempts if a.failed]
                if failed:
                    logger.info(
                        "Resolved %s via %s after failures from %s",
                        subject,
                        provider.id,
                        ", ".join(failed),
                    )
                return value

        return None

    async def _attempt(
        self,
        provider: NameProvider,
        call: Callable[[], Awaitable[Any]],
        subject: str,
        options: ResolveOptions,
        semaphore: asyncio.Semaphore | None = None,
    ) -> tuple[Any | None, ProviderAttempt]:
        """Run one provider call and classify its outcome."""
        async with semaphore if semaphore is not None else nullcontext():
            if options.cancelled:
                return None, ProviderAttempt(
                    provider_id=provider.id,
                    outcome=AttemptOutcome.SKIPPED,
                )

            start = time.monotonic()
            value: Any = None
            error: str | None = None
            try:
                async with asyncio.timeout(self.config.attempt_timeout):
                    value = await call()
            except ProviderTimeoutError as e:
                outcome, error = AttemptOutcome.TIMEOUT, str(e)
            except ProviderError as e:
                outcome, error = AttemptOutcome.ERROR, str(e)
            except TimeoutError:
                outcome = AttemptOutcome.TIMEOUT
                error = f"Timed out after {self.config.attempt_timeout}s"
            except Exception as e:
                logger.exception("Provider %s raised unexpectedly for %s", provider.id, subject)
                outcome, error = AttemptOutcome.ERROR, f"{type(e).__name__}: {e}"
            else:
                if value is None or value == "":
                    outcome, value = AttemptOutcome.NO_RECORD, None
                else:
                    outcome = AttemptOutcome.SUCCESS

        attempt = ProviderAttempt(
            provider_id=provider.id,
            outcome=outcome,
            error_message=error,
            duration_ms=(time.monotonic() - start) * 1000,
        )
        self._stats[provider.id].record(attempt)

        if attempt.failed:
            logger.warning("Provider %s failed for %s: %s", provider.id, subject, error)
        elif outcome == AttemptOutcome.NO_RECORD:
            logger.debug("Provider %s has no record for %s", provider.id, subject)

        return value, attempt

    # Cache

    def _passthrough(self, raw: str) -> ResolutionResult | None:
        if not self.config.address_passthrough:
            return None
        detection = self._detector.detect(raw)
        return address_result(detection.address) if detection else None

    async def _cache_get(self, key: CacheKey) -> Any | None:
        try:
            return await self._cache.get(key)
        except CacheError as e:
            logger.warning("Cache read failed for %s: %s", key.subject, e)
            return None

    async def _cache_put(self, key: CacheKey, value: Any) -> None:
        try:
            await self._cache.put(key, value, self.config.cache_ttl)
        except CacheError as e:
            logger.warning("Cache write failed for %s: %s", key.subject, e)

    async def invalidate_cache(self, name: str | None = None) -> None:
        """
        Drop cached entries for one name or address, or everything.

        Reverse entries are keyed by the lowercased address, so an address
        given in any casing drops them too.
        """
        try:
            if name is None:
                await self._cache.clear()
            else:
                await self._cache.invalidate_subject(normalize_name(name))
        except CacheError as e:
            logger.warning("Cache invalidation failed for %s: %s", name or "all entries", e)

    async def cache_stats(self) -> CacheStats:
        """Backend statistics; empty when the backend is unreachable."""
        try:
            return await self._cache.stats()
        except CacheError as e:
            logger.warning("Cache stats unavailable: %s", e)
            return CacheStats()

    def provider_stats(self) -> dict[str, ProviderStats]:
        """Per-provider attempt counters."""
        return dict(self._stats)

    async def close(self) -> None:
        """Close every registered provider and the cache."""
        for provider in self._router.providers:
            await provider.close()
        await self._cache.close()

    async def __aenter__(self) -> "NameOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
