"""Admin endpoints."""
from typing import List

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pushit.api.deps import get_clock, get_db, verify_admin_token
from pushit.core.clock import Clock
from pushit.schemas import HoldResponse, SweepResponse
from pushit.services.holds import list_live_holds, sweep_stale_holds

logger = structlog.get_logger(__name__)
router = APIRouter(dependencies=[Depends(verify_admin_token)])


@router.get("/holds", response_model=List[HoldResponse])
def live_holds_endpoint(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Every live hold, newest first (admin only)."""
    return list_live_holds(db, clock=clock)


@router.post("/holds/sweep", response_model=SweepResponse)
def sweep_endpoint(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> SweepResponse:
    """Run the stale-hold sweep now instead of waiting for the reaper."""
    reaped = sweep_stale_holds(db, clock=clock)
    logger.info("admin_sweep", reaped=reaped)
    return SweepResponse(reaped=reaped)
