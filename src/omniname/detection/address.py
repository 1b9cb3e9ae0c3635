"""Raw address detection for inputs that need no provider lookup."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar

from omniname.core.types import AddressKind


@dataclass
class AddressDetection:
    """Result of raw address detection."""

    kind: AddressKind
    address: str

    def __repr__(self) -> str:
        return f"AddressDetection(kind={self.kind.value}, address={self.address!r})"


class AddressDetector:
    """Detects inputs that are already on-chain addresses."""

    EVM_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^0x[0-9a-fA-F]{40}$")
    SUI_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^0x[0-9a-fA-F]{64}$")

    def detect(self, value: str) -> AddressDetection | None:
        """
        Detect a raw address.

        The original casing is preserved so EIP-55 checksummed input is
        returned as given. Returns None for anything that is not an address.
        """
        value = value.strip()

        if self.EVM_PATTERN.match(value):
            return AddressDetection(kind=AddressKind.EVM, address=value)

        if self.SUI_PATTERN.match(value):
            return AddressDetection(kind=AddressKind.SUI, address=value)

        return None
