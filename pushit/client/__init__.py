"""Client protocol layer: hold sessions and hold-to-vote."""
from pushit.client.backend import Backend, BackendError, HttpBackend
from pushit.client.geolocation import detect_country
from pushit.client.session import HoldSessionManager, SessionHandle
from pushit.client.store import StateStore
from pushit.client.vote_hold import HoldOutcome, HoldState, VoteHoldController

__all__ = [
    "Backend",
    "BackendError",
    "HttpBackend",
    "detect_country",
    "HoldSessionManager",
    "SessionHandle",
    "StateStore",
    "HoldOutcome",
    "HoldState",
    "VoteHoldController",
]
