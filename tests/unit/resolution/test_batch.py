"""Tests for batch planning and multi-name resolution."""

from __future__ import annotations

import asyncio

import pytest
from chain_mocks import EthCallRouter
from eth_abi import encode
from eth_utils import to_checksum_address
from stubs import (
    ADDRESS_A,
    ADDRESS_B,
    ADDRESS_F,
    VITALIK,
    BatchStubProvider,
    ManualClock,
    StubProvider,
    failing_provider,
)

from omniname.cache.memory import ResolutionCache
from omniname.core.exceptions import InvalidNameFormat, ProviderError
from omniname.core.models import ResolutionResult, ResolveOptions
from omniname.core.namehash import namehash
from omniname.detection.address import AddressDetector
from omniname.providers.base import ProviderConfig
from omniname.providers.ens import ADDR_SELECTOR, RESOLVER_SELECTOR, EnsProvider
from omniname.resolution.batch import BatchPlan, group_by_primary
from omniname.resolution.orchestrator import NameOrchestrator, OrchestratorConfig
from omniname.resolution.router import Router


class ConcurrencyTracker(StubProvider):
    """Records the highest number of overlapping resolve calls."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.in_flight = 0
        self.max_in_flight = 0

    async def resolve(self, name, chain_id=None, coin_type=None):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return await super().resolve(name, chain_id, coin_type)
        finally:
            self.in_flight -= 1


class CancellingProvider(StubProvider):
    """Sets the batch cancel event on its first call."""

    def __init__(self, event: asyncio.Event, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.event = event

    async def resolve(self, name, chain_id=None, coin_type=None):
        self.event.set()
        return await super().resolve(name, chain_id, coin_type)


def summary(results: dict[str, ResolutionResult | None]) -> dict[str, tuple[str, str] | None]:
    """Comparable view of results, ignoring timestamps."""
    return {
        name: (r.resolved_address, r.source_provider_id) if r is not None else None
        for name, r in results.items()
    }


# ============================================================================
# BatchPlan Tests
# ============================================================================


class TestBatchPlan:
    """Tests for batch planning."""

    def test_normalizes_and_dedupes(self):
        plan = BatchPlan.build(["Alice.eth", "alice.eth", "bob.eth", "Alice.eth"])

        assert plan.inputs == {
            "Alice.eth": "alice.eth",
            "alice.eth": "alice.eth",
            "bob.eth": "bob.eth",
        }
        assert plan.unique == ["alice.eth", "bob.eth"]

    def test_passthrough(self):
        plan = BatchPlan.build([VITALIK, "a.eth"], AddressDetector())

        assert plan.passthrough[VITALIK].resolved_address == VITALIK
        assert plan.unique == ["a.eth"]

    def test_passthrough_disabled(self):
        plan = BatchPlan.build([VITALIK])
        assert plan.passthrough == {}
        assert plan.unique == [VITALIK.lower()]

    def test_invalid_name_fails_whole_plan(self):
        with pytest.raises(InvalidNameFormat):
            BatchPlan.build(["a.eth", "a..eth"])

    def test_collect(self):
        plan = BatchPlan.build(["A.eth", "a.eth", "b.eth"])
        result = ResolutionResult(resolved_address=ADDRESS_A, source_provider_id="p")

        collected = plan.collect({"a.eth": result})

        assert collected == {"A.eth": result, "a.eth": result, "b.eth": None}

    def test_group_by_primary(self):
        ens = StubProvider("ens", suffixes=(".eth",))
        sns = StubProvider("sns", suffixes=(".sol",))
        router = Router()
        router.register(ens)
        router.register(sns)

        groups, unroutable = group_by_primary(["a.eth", "b.sol", "c.eth", "d.xyz"], router)

        assert [(g.provider.id, g.names) for g in groups] == [
            ("ens", ["a.eth", "c.eth"]),
            ("sns", ["b.sol"]),
        ]
        assert unroutable == ["d.xyz"]


# ============================================================================
# resolve_many Tests
# ============================================================================


class TestResolveMany:
    """Tests for multi-name resolution."""

    async def test_partial_failure_isolated(self, make_orchestrator):
        ens = StubProvider("ens", default=ADDRESS_A, suffixes=(".eth",))
        broken = failing_provider("broken", suffixes=(".sol",))
        orchestrator = make_orchestrator((ens, None, False), (broken, None, False))

        results = await orchestrator.resolve_many(["a.eth", "b.sol", "c.eth"])

        assert results["a.eth"].resolved_address == ADDRESS_A
        assert results["c.eth"].resolved_address == ADDRESS_A
        assert results["b.sol"] is None

    async def test_failing_name_uses_own_fallback(self, make_orchestrator):
        ens = StubProvider("ens", default=ADDRESS_A, suffixes=(".eth",))
        broken = failing_provider("broken", suffixes=(".sol",))
        fallback = StubProvider("fallback", default=ADDRESS_F)
        orchestrator = make_orchestrator(
            (ens, None, False), (broken, None, False), (fallback, [], True)
        )

        results = await orchestrator.resolve_many(["a.eth", "b.sol", "c.eth"])

        assert results["b.sol"].resolved_address == ADDRESS_F
        assert results["a.eth"].source_provider_id == "ens"
        assert fallback.calls == ["b.sol"]

    async def test_equivalent_to_individual_resolution(self, clock: ManualClock):
        names = ["Vitalik.eth", "toly.sol", "broken.sol", "@alice", "unknown.xyz", VITALIK, "vitalik.eth"]

        def build() -> NameOrchestrator:
            router = Router()
            router.register(BatchStubProvider("ens", {"vitalik.eth": ADDRESS_A}, suffixes=(".eth",)))
            router.register(
                StubProvider("sns", {"toly.sol": ADDRESS_B}, suffixes=(".sol",))
            )
            router.register(StubProvider("cifi", {"@alice": ADDRESS_F}, prefixes=("@",)), fallback=True)
            return NameOrchestrator(router, cache=ResolutionCache(clock=clock), clock=clock)

        batched = await build().resolve_many(names)

        single_orchestrator = build()
        individual = {name: await single_orchestrator.resolve(name) for name in names}

        assert summary(batched) == summary(individual)
        assert list(batched) == names

    async def test_batch_capable_provider_called_once(self, make_orchestrator):
        ens = BatchStubProvider("ens", default=ADDRESS_A, suffixes=(".eth",))
        orchestrator = make_orchestrator((ens, None, False))

        results = await orchestrator.resolve_many(["a.eth", "b.eth", "c.eth"])

        assert all(r.resolved_address == ADDRESS_A for r in results.values())
        assert ens.batch_calls == [["a.eth", "b.eth", "c.eth"]]
        assert ens.call_count == 0

    async def test_single_name_group_uses_resolve(self, make_orchestrator):
        ens = BatchStubProvider("ens", default=ADDRESS_A, suffixes=(".eth",))
        orchestrator = make_orchestrator((ens, None, False))

        await orchestrator.resolve_many(["a.eth"])

        assert ens.batch_calls == []
        assert ens.call_count == 1

    async def test_names_missing_from_batch_continue(self, make_orchestrator):
        ens = BatchStubProvider(
            "ens", {"a.eth": ADDRESS_A}, suffixes=(".eth",), omit={"b.eth"}
        )
        fallback = StubProvider("fallback", default=ADDRESS_F)
        orchestrator = make_orchestrator((ens, None, False), (fallback, [], True))

        results = await orchestrator.resolve_many(["a.eth", "b.eth", "c.eth"])

        assert results["a.eth"].source_provider_id == "ens"
        assert results["b.eth"].source_provider_id == "fallback"
        assert results["c.eth"].source_provider_id == "fallback"
        assert sorted(fallback.calls) == ["b.eth", "c.eth"]
        assert ens.call_count == 0

    async def test_batch_error_falls_back_per_name(self, make_orchestrator):
        ens = BatchStubProvider(
            "ens",
            default=ADDRESS_A,
            suffixes=(".eth",),
            batch_error=ProviderError("multicall reverted", provider_id="ens"),
        )
        fallback = StubProvider("fallback", default=ADDRESS_F)
        orchestrator = make_orchestrator((ens, None, False), (fallback, [], True))

        results = await orchestrator.resolve_many(["a.eth", "b.eth"])

        assert summary(results) == {
            "a.eth": (ADDRESS_F, "fallback"),
            "b.eth": (ADDRESS_F, "fallback"),
        }
        assert orchestrator.provider_stats()["ens"].errors == 1

    async def test_batch_results_cached(self, make_orchestrator):
        ens = BatchStubProvider("ens", default=ADDRESS_A, suffixes=(".eth",))
        orchestrator = make_orchestrator((ens, None, False))

        await orchestrator.resolve_many(["a.eth", "b.eth"])
        trace = await orchestrator.resolve_with_trace("a.eth")
        again = await orchestrator.resolve_many(["a.eth", "b.eth"])

        assert trace.cache_hit
        assert len(ens.batch_calls) == 1
        assert all(r is not None for r in again.values())

    async def test_duplicates_resolved_once(self, make_orchestrator):
        provider = StubProvider("p", default=ADDRESS_A)
        orchestrator = make_orchestrator((provider, [".eth"], False))

        results = await orchestrator.resolve_many(["A.eth", "a.eth", " a.eth"])

        assert len(results) == 3
        assert provider.call_count == 1

    async def test_invalid_name_raises_before_io(self, make_orchestrator):
        provider = StubProvider("p", default=ADDRESS_A)
        orchestrator = make_orchestrator((provider, [".eth"], False))

        with pytest.raises(InvalidNameFormat):
            await orchestrator.resolve_many(["a.eth", ""])
        assert provider.call_count == 0

    async def test_empty_input(self, make_orchestrator):
        orchestrator = make_orchestrator()
        assert await orchestrator.resolve_many([]) == {}

    async def test_concurrency_bounded(self, clock: ManualClock, cache: ResolutionCache):
        tracker = ConcurrencyTracker("tracked", default=ADDRESS_A, delay=0.01)
        router = Router()
        router.register(tracker, [".eth"])
        orchestrator = NameOrchestrator(
            router, cache=cache, clock=clock, config=OrchestratorConfig(batch_concurrency=3)
        )

        results = await orchestrator.resolve_many([f"n{i}.eth" for i in range(10)])

        assert all(r is not None for r in results.values())
        assert tracker.max_in_flight <= 3
        assert tracker.call_count == 10


# ============================================================================
# Cancellation Tests
# ============================================================================


class TestCancellation:
    """Tests for batch cancellation."""

    async def test_cancelled_before_start(self, make_orchestrator):
        provider = StubProvider("p", default=ADDRESS_A)
        orchestrator = make_orchestrator((provider, [".eth"], False))
        event = asyncio.Event()
        event.set()

        results = await orchestrator.resolve_many(
            ["a.eth", "b.eth", VITALIK], ResolveOptions(cancel_event=event)
        )

        assert results["a.eth"] is None
        assert results["b.eth"] is None
        assert results[VITALIK].resolved_address == VITALIK
        assert provider.call_count == 0

    async def test_cancelled_mid_batch(self, clock: ManualClock, cache: ResolutionCache):
        event = asyncio.Event()
        provider = CancellingProvider(event, "p", default=ADDRESS_A)
        fallback = StubProvider("fallback", default=ADDRESS_F)
        router = Router()
        router.register(provider, [".eth"])
        router.register(fallback, [], fallback=True)
        orchestrator = NameOrchestrator(
            router, cache=cache, clock=clock, config=OrchestratorConfig(batch_concurrency=1)
        )

        results = await orchestrator.resolve_many(
            [f"n{i}.eth" for i in range(5)], ResolveOptions(cancel_event=event)
        )

        assert provider.call_count == 1
        assert fallback.call_count == 0
        assert sum(1 for r in results.values() if r is not None) == 1

    async def test_cached_names_survive_cancellation(self, make_orchestrator):
        provider = StubProvider("p", default=ADDRESS_A)
        orchestrator = make_orchestrator((provider, [".eth"], False))
        await orchestrator.resolve("a.eth")

        event = asyncio.Event()
        event.set()
        results = await orchestrator.resolve_many(
            ["a.eth", "b.eth"], ResolveOptions(cancel_event=event)
        )

        assert results["a.eth"] is not None
        assert results["b.eth"] is None


# ============================================================================
# Batch-Capable Adapter Tests
# ============================================================================


ENS_RESOLVER = to_checksum_address("0x" + "4" * 40)


def ens_call(selector: bytes, name: str) -> bytes:
    return selector + encode(["bytes32"], [namehash(name)])


def point_at_resolver(router: EthCallRouter, name: str) -> None:
    router.add(
        EnsProvider.REGISTRY_ADDRESS, ens_call(RESOLVER_SELECTOR, name), ["address"], [ENS_RESOLVER]
    )


@pytest.fixture
def ens_records(eth_call_router: EthCallRouter) -> EthCallRouter:
    """ENS state: good.eth resolves, bad.eth returns truncated address data."""
    point_at_resolver(eth_call_router, "good.eth")
    eth_call_router.add(ENS_RESOLVER, ens_call(ADDR_SELECTOR, "good.eth"), ["address"], [VITALIK])
    point_at_resolver(eth_call_router, "bad.eth")
    eth_call_router.add_raw(ENS_RESOLVER, ens_call(ADDR_SELECTOR, "bad.eth"), b"\x01")
    return eth_call_router


class TestResolveManyWithEns:
    """Batch resolution through the multicall-backed ENS provider."""

    async def test_undecodable_record_only_affects_its_name(
        self,
        make_orchestrator,
        provider_config: ProviderConfig,
        ens_records: EthCallRouter,
    ):
        ens = EnsProvider(provider_config)
        fallback = StubProvider("cifi", default=ADDRESS_F)
        orchestrator = make_orchestrator((ens, None, False), (fallback, [], True))

        results = await orchestrator.resolve_many(["good.eth", "bad.eth"])

        assert summary(results) == {
            "good.eth": (VITALIK, "ens"),
            "bad.eth": (ADDRESS_F, "cifi"),
        }
        assert fallback.calls == ["bad.eth"]
        assert ens_records.multicall_requests == 2

    async def test_equivalent_to_individual_resolution(
        self,
        clock: ManualClock,
        provider_config: ProviderConfig,
        ens_records: EthCallRouter,
    ):
        names = ["good.eth", "Bad.eth", "missing.eth", "toly.sol", "good.eth"]

        def build() -> NameOrchestrator:
            router = Router()
            router.register(EnsProvider(provider_config))
            router.register(StubProvider("sns", {"toly.sol": ADDRESS_B}, suffixes=(".sol",)))
            router.register(StubProvider("cifi", {"bad.eth": ADDRESS_F}), [], fallback=True)
            return NameOrchestrator(router, cache=ResolutionCache(clock=clock), clock=clock)

        batched = await build().resolve_many(names)

        single_orchestrator = build()
        individual = {name: await single_orchestrator.resolve(name) for name in names}

        assert summary(batched) == summary(individual)
        assert summary(batched) == {
            "good.eth": (VITALIK, "ens"),
            "Bad.eth": (ADDRESS_F, "cifi"),
            "missing.eth": None,
            "toly.sol": (ADDRESS_B, "sns"),
        }
