"""General utility functions."""
from datetime import datetime, timezone
from typing import Optional

from pushit.core.constants import POLL_STATUS_ACTIVE


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC timezone."""
    if dt.tzinfo is None:
        # Assume UTC if no timezone (SQLite hands back naive datetimes)
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_poll_open(status: str, expires_at: Optional[datetime], now: datetime) -> bool:
    """
    Check if a poll still accepts votes and pushes.

    A poll is open while its status is active and its expiry lies in the
    future. Polls without an expiry never close on their own.
    """
    if status != POLL_STATUS_ACTIVE:
        return False
    if expires_at is None:
        return True
    return to_utc(expires_at) > to_utc(now)


def format_time_left(expires_at: Optional[datetime], now: datetime) -> str:
    """
    Human readable time until a poll closes.

    Returns "Ended" once expired, otherwise the largest whole unit:
    "2 days", "5h" or "12min".
    """
    if expires_at is None:
        return "No end"

    remaining = (to_utc(expires_at) - to_utc(now)).total_seconds()
    if remaining <= 0:
        return "Ended"

    days = int(remaining // 86400)
    hours = int((remaining % 86400) // 3600)
    if days > 0:
        return f"{days} days"
    if hours > 0:
        return f"{hours}h"

    minutes = int((remaining % 3600) // 60)
    return f"{minutes}min"


def percentage(part: int, total: int) -> int:
    """Whole-number share of total, 0 when there is nothing to divide."""
    if total <= 0:
        return 0
    # Half-up rounding, so 12.5% shows as 13%
    return int(part * 100 / total + 0.5)
