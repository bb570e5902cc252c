"""Push (poll boost) business logic.

Each user may push a given poll once, and push at most MAX_DAILY_PUSHES
polls per UTC day.
"""
from datetime import date
from typing import Dict

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pushit.core import config
from pushit.core.clock import Clock, system_clock
from pushit.core.constants import TABLE_POLLS
from pushit.core.events import UPDATE, ChangeEvent, change_hub
from pushit.core.exceptions import (
    AlreadyPushedError,
    PollClosedError,
    PollNotFoundError,
    PushLimitReachedError,
)
from pushit.core.utils import is_poll_open
from pushit.db.models import DailyPushLimit, Poll, UserPush

logger = structlog.get_logger(__name__)


def _today(clock: Clock) -> date:
    return clock.now().date()


def _limits_dict(used: int, max_pushes: int) -> Dict:
    remaining = max(0, max_pushes - used)
    return {
        "pushes_used": used,
        "max_pushes": max_pushes,
        "remaining": remaining,
        "can_push": remaining > 0,
    }


def get_push_limits(db: Session, user_id: str, clock: Clock = system_clock) -> Dict:
    """Pushes used today and whether another one is allowed."""
    row = db.query(DailyPushLimit).filter(
        DailyPushLimit.user_id == user_id,
        DailyPushLimit.push_date == _today(clock),
    ).first()

    if row is None:
        return _limits_dict(0, config.settings.MAX_DAILY_PUSHES)
    return _limits_dict(row.push_count, row.max_pushes)


def push_poll(db: Session, user_id: str, poll_id: int, clock: Clock = system_clock) -> Dict:
    """Push (boost) a poll.

    Returns:
        dict with poll_id, the poll's new push_count and the user's limits

    Raises:
        PollNotFoundError, PollClosedError, AlreadyPushedError,
        PushLimitReachedError
    """
    now = clock.now()

    poll = db.get(Poll, poll_id)
    if poll is None:
        raise PollNotFoundError()

    if not is_poll_open(poll.status, poll.expires_at, now):
        raise PollClosedError()

    already = db.query(UserPush).filter(
        UserPush.poll_id == poll_id, UserPush.user_id == user_id
    ).first()
    if already is not None:
        raise AlreadyPushedError()

    today = _today(clock)
    limit = db.query(DailyPushLimit).filter(
        DailyPushLimit.user_id == user_id, DailyPushLimit.push_date == today
    ).first()
    if limit is None:
        limit = DailyPushLimit(
            user_id=user_id,
            push_date=today,
            push_count=0,
            max_pushes=config.settings.MAX_DAILY_PUSHES,
        )
        db.add(limit)

    if limit.push_count >= limit.max_pushes:
        db.rollback()
        raise PushLimitReachedError()

    try:
        db.add(UserPush(poll_id=poll_id, user_id=user_id, pushed_at=now))
        limit.push_count += 1
        poll.push_count = (poll.push_count or 0) + 1
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyPushedError()

    change_hub.publish(ChangeEvent(
        table=TABLE_POLLS,
        event_type=UPDATE,
        record_id=str(poll_id),
        payload={"push_count": poll.push_count},
    ))
    logger.info("poll_pushed", poll_id=poll_id, user_id=user_id, pushes_today=limit.push_count)

    return {
        "poll_id": poll_id,
        "push_count": poll.push_count,
        "limits": _limits_dict(limit.push_count, limit.max_pushes),
    }
