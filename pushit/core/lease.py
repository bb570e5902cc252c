"""Liveness leases for hold sessions.

A hold stays live only while its owner keeps renewing it. The lease is the
single place that knows how a hold's timestamps translate into "still here"
or "gone", both for the server (counting and reaping rows) and the client
(tracking its own heartbeat).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pushit.core.utils import to_utc


@dataclass
class Lease:
    """Liveness window anchored at the latest of start and last renewal."""

    started_at: datetime
    timeout: timedelta
    renewed_at: Optional[datetime] = None

    def __post_init__(self):
        self.started_at = to_utc(self.started_at)
        if self.renewed_at is not None:
            self.renewed_at = to_utc(self.renewed_at)

    @property
    def reference(self) -> datetime:
        """max(started_at, renewed_at): the last moment the owner was seen."""
        if self.renewed_at is None:
            return self.started_at
        return max(self.started_at, self.renewed_at)

    @property
    def expires_at(self) -> datetime:
        return self.reference + self.timeout

    def renew(self, now: datetime) -> None:
        """Push the window forward. Renewals never move it backwards."""
        now = to_utc(now)
        if self.renewed_at is None or now > self.renewed_at:
            self.renewed_at = now

    def is_live(self, now: datetime) -> bool:
        return to_utc(now) < self.expires_at

    def remaining(self, now: datetime) -> timedelta:
        """Time left before the lease lapses (negative once lapsed)."""
        return self.expires_at - to_utc(now)
