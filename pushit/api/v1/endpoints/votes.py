"""Vote endpoints."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pushit.api.deps import Identity, get_clock, get_current_identity, get_db
from pushit.core import config
from pushit.core.cache import get_or_fetch, global_cache, poll_tallies_key
from pushit.core.clock import Clock
from pushit.core.rate_limit import RATE_LIMITS, limiter
from pushit.schemas import PollTallyResponse, VoteRequest, VoteResponse
from pushit.services.votes import cast_vote, get_vote_tallies

router = APIRouter()


@router.post("/polls/{poll_id}/votes", response_model=VoteResponse)
@limiter.limit(RATE_LIMITS["vote"])
def vote_endpoint(
    request: Request,
    poll_id: int,
    vote_request: VoteRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    clock: Clock = Depends(get_clock),
):
    """
    Cast or edit a vote once the hold-to-vote countdown completed.

    A second vote in the same poll needs edit=true; it then replaces the
    first one instead of adding a row.

    Raises:
        HTTPException: 400 poll closed or option invalid
        HTTPException: 404 poll not found
        HTTPException: 409 already voted without edit

    Example:
        Request:
            POST /api/v1/polls/7/votes
            {"option_id": 21, "hold_id": "0b4e..."}

        Response (200):
            {"poll_id": 7, "option_id": 21, "updated": false}

        Response (409):
            {"detail": "You have already voted in this poll"}
    """
    return cast_vote(
        db,
        poll_id,
        vote_request.option_id,
        identity.user_id,
        edit=vote_request.edit,
        hold_id=vote_request.hold_id,
        clock=clock,
    )


@router.get("/polls/{poll_id}/tallies", response_model=PollTallyResponse)
def tallies_endpoint(poll_id: int, db: Session = Depends(get_db)):
    """Per-option counts and whole-number percentages from raw votes."""
    return get_or_fetch(
        global_cache,
        poll_tallies_key(poll_id),
        lambda: get_vote_tallies(db, poll_id),
        ttl_seconds=config.settings.LIVE_COUNT_CACHE_TTL,
    )
