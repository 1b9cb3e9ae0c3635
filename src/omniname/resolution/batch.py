"""Batch planning for multi-name resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from omniname.core.exceptions import InvalidNameFormat
from omniname.core.models import ResolutionResult
from omniname.core.normalization import normalize_name
from omniname.core.types import ProviderName
from omniname.detection.address import AddressDetector
from omniname.providers.base import NameProvider

from .router import Router


@dataclass
class ProviderGroup:
    """Names sharing the same primary candidate."""

    provider: NameProvider
    names: list[str] = field(default_factory=list)

    @property
    def batchable(self) -> bool:
        return self.provider.supports_batch and len(self.names) > 1


@dataclass
class BatchPlan:
    """
    Work breakdown for a batch.

    Every input is normalized up front so a malformed name fails the whole
    call before any I/O. Duplicates collapse onto one normalized name.
    """

    # Original input -> normalized name
    inputs: dict[str, str]

    # Raw addresses answered without provider I/O, keyed by original input
    passthrough: dict[str, ResolutionResult]

    # Normalized names still needing resolution, first-seen order
    unique: list[str]

    @classmethod
    def build(
        cls,
        names: Iterable[str],
        detector: AddressDetector | None = None,
    ) -> BatchPlan:
        inputs: dict[str, str] = {}
        passthrough: dict[str, ResolutionResult] = {}
        unique: list[str] = []
        seen: set[str] = set()

        for original in names:
            if original in inputs:
                continue
            normalized = normalize_name(original)
            inputs[original] = normalized

            if detector is not None:
                detection = detector.detect(original)
                if detection is not None:
                    passthrough[original] = address_result(detection.address)
                    continue

            if normalized not in seen:
                seen.add(normalized)
                unique.append(normalized)

        return cls(inputs=inputs, passthrough=passthrough, unique=unique)

    def collect(self, resolved: dict[str, Any]) -> dict[str, Any]:
        """One output entry per original input."""
        return {
            original: self.passthrough[original]
            if original in self.passthrough
            else resolved.get(normalized)
            for original, normalized in self.inputs.items()
        }


def address_result(address: str) -> ResolutionResult:
    """Result for a raw address that resolves to itself."""
    return ResolutionResult(
        resolved_address=address,
        source_provider_id=ProviderName.ADDRESS.value,
        name=address,
    )


def clean_address(address: str) -> str:
    """Trimmed reverse-lookup input; empty input is rejected."""
    if not isinstance(address, str) or not address.strip():
        raise InvalidNameFormat("Address must not be empty", name=address)
    return address.strip()


def group_by_primary(
    names: Iterable[str],
    router: Router,
    exhaustive: bool = False,
) -> tuple[list[ProviderGroup], list[str]]:
    """
    Partition names by the provider each would try first.

    Returns the groups in first-seen order and the names without any
    candidate.
    """
    groups: dict[str, ProviderGroup] = {}
    unroutable: list[str] = []

    for name in names:
        primary = router.primary_for(name, exhaustive)
        if primary is None:
            unroutable.append(name)
            continue
        groups.setdefault(primary.id, ProviderGroup(primary)).names.append(name)

    return list(groups.values()), unroutable
