"""Clock abstraction for TTL and timestamp computation."""

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of wall-clock and monotonic time."""

    def now(self) -> datetime:
        """Current UTC wall-clock time."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds, used for expiry arithmetic."""
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
