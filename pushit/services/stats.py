"""Aggregate statistics."""
from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pushit.core.clock import Clock, system_clock
from pushit.db.models import Poll, UserPush, UserVote
from pushit.services.holds import count_live_holds, live_holds_by_location
from pushit.services.polls import count_open_polls


def get_user_stats(db: Session, user_id: str) -> Dict[str, int]:
    """Counts for one user, all computed from raw rows."""
    own_polls = select(Poll.id).where(Poll.created_by == user_id)

    return {
        "polls_created": db.query(func.count(Poll.id)).filter(Poll.created_by == user_id).scalar() or 0,
        "votes_cast": db.query(func.count(UserVote.id)).filter(UserVote.user_id == user_id).scalar() or 0,
        "votes_received": (
            db.query(func.count(UserVote.id))
            .filter(UserVote.poll_id.in_(own_polls))
            .scalar() or 0
        ),
        "pushes_received": (
            db.query(func.count(UserPush.id))
            .filter(UserPush.poll_id.in_(own_polls))
            .scalar() or 0
        ),
    }


def get_global_stats(db: Session, clock: Clock = system_clock) -> Dict:
    return {
        "live_holders": count_live_holds(db, clock=clock),
        "live_by_location": [
            {"location": location, "count": count}
            for location, count in live_holds_by_location(db, clock=clock)
        ],
        "active_polls": count_open_polls(db, clock=clock),
        "total_polls": db.query(func.count(Poll.id)).scalar() or 0,
        "total_votes": db.query(func.count(UserVote.id)).scalar() or 0,
    }
