"""Endpoints about the signed-in user."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pushit.api.deps import Identity, get_clock, get_current_identity, get_db
from pushit.core.clock import Clock
from pushit.schemas import PollSummary, ProfileResponse, ProfileUpdate, PushLimits, UserStats
from pushit.services.polls import list_created_polls, list_saved_polls, list_voted_polls
from pushit.services.profiles import get_or_create_profile, update_profile
from pushit.services.pushes import get_push_limits
from pushit.services.stats import get_user_stats

router = APIRouter()


@router.get("/saved-polls", response_model=List[PollSummary])
def saved_polls_endpoint(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    clock: Clock = Depends(get_clock),
):
    return list_saved_polls(db, identity.user_id, clock=clock)


@router.get("/created-polls", response_model=List[PollSummary])
def created_polls_endpoint(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    clock: Clock = Depends(get_clock),
):
    return list_created_polls(db, identity.user_id, clock=clock)


@router.get("/voted-polls", response_model=List[PollSummary])
def voted_polls_endpoint(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    clock: Clock = Depends(get_clock),
):
    """Polls the caller voted in, most recent vote first."""
    return list_voted_polls(db, identity.user_id, clock=clock)


@router.get("/push-limits", response_model=PushLimits)
def push_limits_endpoint(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    clock: Clock = Depends(get_clock),
):
    return get_push_limits(db, identity.user_id, clock=clock)


@router.get("/stats", response_model=UserStats)
def user_stats_endpoint(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return get_user_stats(db, identity.user_id)


@router.get("/profile", response_model=ProfileResponse)
def get_profile_endpoint(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """The caller's profile, created on first access."""
    return get_or_create_profile(db, identity.user_id, identity.email)


@router.put("/profile", response_model=ProfileResponse)
def update_profile_endpoint(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Change username and/or country. 409 if the username is taken."""
    return update_profile(
        db,
        identity.user_id,
        username=body.username,
        country=body.country,
        email=identity.email,
    )
