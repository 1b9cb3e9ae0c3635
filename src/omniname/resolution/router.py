"""Pattern-based routing of names to ordered provider candidates."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from omniname.core.exceptions import ConfigurationError
from omniname.core.types import PatternKind
from omniname.providers.base import NameProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutePattern:
    """A suffix (``.eth``) or prefix (``@``) routing pattern."""

    kind: PatternKind
    value: str

    @classmethod
    def parse(cls, pattern: str) -> RoutePattern:
        """Patterns starting with ``.`` are suffixes, anything else a prefix."""
        value = pattern.strip().lower()
        if not value:
            raise ConfigurationError("Route pattern must not be empty")
        kind = PatternKind.SUFFIX if value.startswith(".") else PatternKind.PREFIX
        return cls(kind, value)

    @property
    def specificity(self) -> int:
        return len(self.value)

    def matches(self, name: str) -> bool:
        if len(name) <= len(self.value):
            return False
        if self.kind == PatternKind.SUFFIX:
            return name.endswith(self.value)
        return name.startswith(self.value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Route:
    """Providers mapped to one pattern, in registration order."""

    pattern: RoutePattern
    providers: tuple[NameProvider, ...]

    # Sequence number of the latest registration touching this route
    sequence: int


@dataclass(frozen=True)
class RouteTable:
    """
    Immutable routing table.

    Every reconfiguration builds a new table; readers hold a reference to
    a consistent snapshot.
    """

    routes: tuple[Route, ...] = ()
    providers: tuple[NameProvider, ...] = ()
    fallback: NameProvider | None = None
    sequence: int = 0

    def provider(self, provider_id: str) -> NameProvider | None:
        for provider in self.providers:
            if provider.id == provider_id:
                return provider
        return None

    def with_registration(
        self,
        provider: NameProvider,
        patterns: Iterable[str],
        fallback: bool = False,
    ) -> RouteTable:
        """Return a new table with ``provider`` mapped to ``patterns``."""
        existing = self.provider(provider.id)
        if existing is not None and existing is not provider:
            raise ConfigurationError(
                f"Provider id {provider.id!r} is already bound to another provider",
                details={"provider_id": provider.id},
            )

        sequence = self.sequence + 1
        routes = {route.pattern: route for route in self.routes}

        for raw in patterns:
            pattern = RoutePattern.parse(raw)
            route = routes.get(pattern)
            if route is None:
                routes[pattern] = Route(pattern, (provider,), sequence)
            elif provider not in route.providers:
                routes[pattern] = Route(pattern, (*route.providers, provider), sequence)
            else:
                routes[pattern] = Route(pattern, route.providers, sequence)

        providers = self.providers if existing is not None else (*self.providers, provider)

        return RouteTable(
            routes=tuple(routes.values()),
            providers=providers,
            fallback=provider if fallback else self.fallback,
            sequence=sequence,
        )


class Router:
    """
    Maps normalized names to ordered provider candidates.

    The longest matching pattern gives the primary candidates. Equal
    specificity goes to the most recently registered route. Without a
    match, or when an exhaustive search is requested, every other provider
    whose ``can_resolve`` accepts the name follows in registration order.
    The fallback provider is always last and never listed twice.
    """

    def __init__(self, table: RouteTable | None = None) -> None:
        self._table = table or RouteTable()
        self._lock = threading.Lock()

    @property
    def table(self) -> RouteTable:
        return self._table

    @property
    def providers(self) -> list[NameProvider]:
        return list(self._table.providers)

    @property
    def fallback(self) -> NameProvider | None:
        return self._table.fallback

    def register(
        self,
        provider: NameProvider,
        patterns: Iterable[str] | None = None,
        *,
        fallback: bool = False,
    ) -> None:
        """Map a provider to patterns; defaults to its own patterns."""
        if patterns is None:
            patterns = provider.default_patterns

        with self._lock:
            self._table = self._table.with_registration(provider, list(patterns), fallback)

        logger.debug(
            "Registered provider %s%s",
            provider.id,
            " as fallback" if fallback else "",
        )

    def get(self, provider_id: str) -> NameProvider | None:
        return self._table.provider(provider_id)

    def match(self, name: str, table: RouteTable | None = None) -> Route | None:
        """Most specific route matching a name."""
        best: Route | None = None
        for route in (table or self._table).routes:
            if not route.pattern.matches(name):
                continue
            if (
                best is None
                or route.pattern.specificity > best.pattern.specificity
                or (
                    route.pattern.specificity == best.pattern.specificity
                    and route.sequence > best.sequence
                )
            ):
                best = route
        return best

    def candidates_for(self, name: str, exhaustive: bool = False) -> list[NameProvider]:
        """Ordered providers to try for a normalized name; disabled ones are skipped."""
        table = self._table
        candidates: list[NameProvider] = []

        route = self.match(name, table)
        if route is not None:
            candidates.extend(route.providers)

        if route is None or exhaustive:
            for provider in table.providers:
                if provider is table.fallback or provider in candidates:
                    continue
                if provider.can_resolve(name):
                    candidates.append(provider)

        if table.fallback is not None and table.fallback not in candidates:
            candidates.append(table.fallback)

        return [p for p in candidates if p.is_enabled]

    def candidate_ids_for(self, name: str, exhaustive: bool = False) -> list[str]:
        return [p.id for p in self.candidates_for(name, exhaustive)]

    def primary_for(self, name: str, exhaustive: bool = False) -> NameProvider | None:
        """The provider a normalized name is tried against first."""
        candidates = self.candidates_for(name, exhaustive)
        return candidates[0] if candidates else None

    def reverse_candidates(self) -> list[NameProvider]:
        """Enabled reverse-capable providers in registration order, fallback last."""
        table = self._table
        candidates = [
            p
            for p in table.providers
            if p.supports_reverse and p.is_enabled and p is not table.fallback
        ]
        fallback = table.fallback
        if fallback is not None and fallback.supports_reverse and fallback.is_enabled:
            candidates.append(fallback)
        return candidates
