"""Global statistics endpoint."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pushit.api.deps import get_clock, get_db
from pushit.core.clock import Clock
from pushit.core.rate_limit import RATE_LIMITS, limiter
from pushit.schemas import GlobalStats
from pushit.services.stats import get_global_stats

router = APIRouter()


@router.get("/stats", response_model=GlobalStats)
@limiter.limit(RATE_LIMITS["read"])
def global_stats_endpoint(
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Live holders (total and by location), open polls and vote totals."""
    return get_global_stats(db, clock=clock)
