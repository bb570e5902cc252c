"""Shared API dependencies."""
from pushit.core.clock import Clock, system_clock
from pushit.core.security import (
    Identity,
    get_current_identity,
    get_optional_identity,
    verify_admin_token,
)
from pushit.db import get_db, get_db_context


def get_clock() -> Clock:
    """Time source for request handlers; overridden in tests."""
    return system_clock


__all__ = [
    "get_db",
    "get_db_context",
    "get_clock",
    "verify_admin_token",
    "get_current_identity",
    "get_optional_identity",
    "Identity",
]
