"""Pydantic schemas for request/response validation."""
from pushit.schemas.auth import AdminLoginRequest, AdminLoginResponse
from pushit.schemas.common import SuccessResponse, ErrorResponse, ErrorDetail
from pushit.schemas.hold import (
    HoldStartRequest,
    HoldResponse,
    HoldEndResponse,
    ActiveCountResponse,
    LocationCount,
    SweepResponse,
)
from pushit.schemas.poll import (
    PollCreate,
    PollCreateResponse,
    OptionTally,
    PollTallyResponse,
    PollSummary,
)
from pushit.schemas.vote import VoteRequest, VoteResponse
from pushit.schemas.push import PushLimits, PushResponse
from pushit.schemas.stats import UserStats, GlobalStats
from pushit.schemas.profile import ProfileResponse, ProfileUpdate

__all__ = [
    "AdminLoginRequest",
    "AdminLoginResponse",
    "SuccessResponse",
    "ErrorResponse",
    "ErrorDetail",
    "HoldStartRequest",
    "HoldResponse",
    "HoldEndResponse",
    "ActiveCountResponse",
    "LocationCount",
    "SweepResponse",
    "PollCreate",
    "PollCreateResponse",
    "OptionTally",
    "PollTallyResponse",
    "PollSummary",
    "VoteRequest",
    "VoteResponse",
    "PushLimits",
    "PushResponse",
    "UserStats",
    "GlobalStats",
    "ProfileResponse",
    "ProfileUpdate",
]
