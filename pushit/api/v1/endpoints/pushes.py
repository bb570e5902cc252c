"""Push endpoints."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pushit.api.deps import Identity, get_clock, get_current_identity, get_db
from pushit.core.clock import Clock
from pushit.core.rate_limit import RATE_LIMITS, limiter
from pushit.schemas import PushResponse
from pushit.services.pushes import push_poll

router = APIRouter()


@router.post("/polls/{poll_id}/push", response_model=PushResponse)
@limiter.limit(RATE_LIMITS["push"])
def push_poll_endpoint(
    request: Request,
    poll_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    clock: Clock = Depends(get_clock),
):
    """
    Boost a poll. One push per poll, MAX_DAILY_PUSHES per day.

    Raises:
        HTTPException: 409 already pushed, 429 daily limit reached
    """
    return push_poll(db, identity.user_id, poll_id, clock=clock)
