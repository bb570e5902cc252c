"""Clock abstraction.

Liveness checks and hold countdowns read time through a Clock so they can be
driven deterministically in tests instead of sleeping.
"""
import time
from datetime import datetime, timezone


class Clock:
    """Source of wall-clock and monotonic time."""

    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        raise NotImplementedError

    def monotonic(self) -> float:
        """Seconds from an arbitrary fixed point; never goes backwards."""
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()


system_clock = SystemClock()
