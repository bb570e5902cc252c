"""Poll endpoints."""
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from pushit.api.deps import Identity, get_clock, get_current_identity, get_db, get_optional_identity
from pushit.core.clock import Clock
from pushit.core.constants import POLL_SORTS, POLL_SORT_NEW, POLL_STATUSES, POLL_STATUS_ACTIVE
from pushit.core.exceptions import PushItError
from pushit.core.rate_limit import RATE_LIMITS, limiter
from pushit.schemas import PollCreate, PollCreateResponse, PollSummary, SuccessResponse
from pushit.services.polls import (
    create_poll,
    get_archived_poll,
    get_poll,
    hide_poll,
    list_polls,
    save_poll,
    unsave_poll,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/polls", response_model=List[PollSummary])
def list_polls_endpoint(
    status: str = Query(POLL_STATUS_ACTIVE),
    sort: str = Query(POLL_SORT_NEW),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    clock: Clock = Depends(get_clock),
):
    """
    List open ("active") or closed ("archived") polls.

    sort: "new" (default), "popular" (most votes) or "hot" (most pushes).

    Signed-in callers get their own flags (has_voted, user_vote, is_saved)
    and never see polls they hid.
    """
    if status not in POLL_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")
    if sort not in POLL_SORTS:
        raise HTTPException(status_code=400, detail=f"Unknown sort: {sort}")
    return list_polls(
        db, identity.user_id if identity else None, status=status, sort=sort, limit=limit, clock=clock
    )


@router.post("/polls", response_model=PollCreateResponse, status_code=201)
@limiter.limit(RATE_LIMITS["poll_create"])
def create_poll_endpoint(
    request: Request,
    poll: PollCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    clock: Clock = Depends(get_clock),
) -> PollCreateResponse:
    """
    Create a poll (signed-in users).

    The poll is open for POLL_DURATION_HOURS. The question and options are
    sanitized by the request schema.

    Example:
        Request:
            POST /api/v1/polls
            Authorization: Bearer eyJhbGc...
            {"question": "Pineapple on pizza?", "options": ["Yes", "No"]}

        Response (201):
            {"poll_id": 7}
    """
    try:
        created = create_poll(
            db,
            identity.user_id,
            poll.question,
            poll.options,
            show_creator_name=poll.show_creator_name,
            creator_name=identity.display_name,
            clock=clock,
        )
    except PushItError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PollCreateResponse(poll_id=created.id)


@router.get("/polls/archive/{poll_id}", response_model=PollSummary)
def archived_poll_endpoint(
    poll_id: int,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    clock: Clock = Depends(get_clock),
):
    """Archive search: a closed poll by id, 404 while it is still open."""
    return get_archived_poll(db, poll_id, identity.user_id if identity else None, clock=clock)


@router.get("/polls/{poll_id}", response_model=PollSummary)
def get_poll_endpoint(
    poll_id: int,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    clock: Clock = Depends(get_clock),
):
    return get_poll(db, poll_id, identity.user_id if identity else None, clock=clock)


@router.post("/polls/{poll_id}/save", response_model=SuccessResponse)
def save_poll_endpoint(
    poll_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SuccessResponse:
    saved = save_poll(db, identity.user_id, poll_id)
    return SuccessResponse(message="Poll saved" if saved else "Poll already saved")


@router.delete("/polls/{poll_id}/save", response_model=SuccessResponse)
def unsave_poll_endpoint(
    poll_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SuccessResponse:
    removed = unsave_poll(db, identity.user_id, poll_id)
    return SuccessResponse(message="Poll removed from saved" if removed else "Poll was not saved")


@router.post("/polls/{poll_id}/hide", response_model=SuccessResponse)
def hide_poll_endpoint(
    poll_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SuccessResponse:
    hidden = hide_poll(db, identity.user_id, poll_id)
    return SuccessResponse(message="Poll hidden" if hidden else "Poll already hidden")
