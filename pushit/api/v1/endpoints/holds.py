"""Hold session endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pushit.api.deps import Identity, get_clock, get_db, get_optional_identity
from pushit.core import config
from pushit.core.cache import get_or_fetch, global_cache
from pushit.core.clock import Clock
from pushit.core.constants import CACHE_KEY_ACTIVE_HOLDERS
from pushit.core.rate_limit import RATE_LIMITS, limiter
from pushit.schemas import ActiveCountResponse, HoldEndResponse, HoldResponse, HoldStartRequest
from pushit.services.holds import count_live_holds, end_hold, renew_hold, start_hold

router = APIRouter()


def _owner(identity: Optional[Identity]) -> Optional[str]:
    return identity.user_id if identity else None


@router.post("", response_model=HoldResponse, status_code=201)
@limiter.limit(RATE_LIMITS["hold_start"])
def start_hold_endpoint(
    request: Request,
    body: HoldStartRequest,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    clock: Clock = Depends(get_clock),
):
    """
    Start holding the global button or a poll option.

    Anonymous callers may hold the global button; poll option holds need an
    identity. A caller's earlier active hold of the same kind is ended first.

    Raises:
        HTTPException: 400 invalid/closed target, 401 anonymous option hold

    Example:
        Request:
            POST /api/v1/holds
            {"target_kind": "global_button", "location_label": "Portugal"}

        Response (201):
            {"id": "0b4e...", "target_kind": "global_button", "is_active": true, ...}
    """
    return start_hold(
        db,
        _owner(identity),
        target_kind=body.target_kind,
        target_id=body.target_id,
        location_label=body.location_label,
        device_id=body.device_id,
        clock=clock,
    )


@router.post("/{hold_id}/heartbeat", response_model=HoldResponse)
@limiter.limit(RATE_LIMITS["hold_heartbeat"])
def heartbeat_endpoint(
    request: Request,
    hold_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    clock: Clock = Depends(get_clock),
):
    """
    Renew a hold's liveness lease.

    Returns 404 once the hold has ended or lapsed; the client should treat
    its session as lost and stop heartbeating.
    """
    return renew_hold(db, hold_id, _owner(identity), clock=clock)


@router.delete("/{hold_id}", response_model=HoldEndResponse)
def end_hold_endpoint(
    hold_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    clock: Clock = Depends(get_clock),
) -> HoldEndResponse:
    """End a hold. Always 200; ended is False if it was already over."""
    return HoldEndResponse(ended=end_hold(db, hold_id, _owner(identity), clock=clock))


@router.get("/active-count", response_model=ActiveCountResponse)
def active_count_endpoint(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ActiveCountResponse:
    """Number of people holding the global button right now."""
    count = get_or_fetch(
        global_cache,
        CACHE_KEY_ACTIVE_HOLDERS,
        lambda: count_live_holds(db, clock=clock),
        ttl_seconds=config.settings.LIVE_COUNT_CACHE_TTL,
    )
    return ActiveCountResponse(active_count=count)
