"""Poll business logic."""
from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from pushit.core import config
from pushit.core.clock import Clock, system_clock
from pushit.core.constants import (
    ANONYMOUS_CREATOR,
    POLL_SORT_HOT,
    POLL_SORT_NEW,
    POLL_SORT_POPULAR,
    POLL_STATUS_ACTIVE,
    POLL_STATUS_ARCHIVED,
    TABLE_POLLS,
)
from pushit.core.events import INSERT, ChangeEvent, change_hub
from pushit.core.exceptions import PollNotFoundError
from pushit.core.sanitization import MAX_USERNAME_LENGTH, sanitize_poll_options, sanitize_poll_question
from pushit.core.utils import format_time_left, is_poll_open, to_utc
from pushit.db.models import HiddenPoll, Poll, PollOption, Profile, SavedPoll, UserVote
from pushit.services.votes import build_tally, get_user_votes_bulk, get_vote_counts_bulk

logger = structlog.get_logger(__name__)


def _creator_name(db: Session, user_id: str, show_creator_name: bool,
                  creator_name: Optional[str]) -> str:
    if not show_creator_name:
        return ANONYMOUS_CREATOR
    profile = db.get(Profile, user_id)
    if profile is not None and profile.username:
        return profile.username
    return (creator_name or user_id[:8])[:MAX_USERNAME_LENGTH]


def create_poll(
    db: Session,
    user_id: str,
    question: str,
    options: List[str],
    show_creator_name: bool = True,
    creator_name: Optional[str] = None,
    clock: Clock = system_clock,
) -> Poll:
    """Create a poll that stays open for POLL_DURATION_HOURS.

    Args:
        db: SQLAlchemy session
        user_id: Creator's identity
        question: 10 to 200 characters
        options: 2 to 5 distinct answers, blank entries ignored
        show_creator_name: False publishes the poll as "Anonymous"
        creator_name: Fallback display name for users without a profile username

    Returns:
        Poll: the created poll with its options loaded

    Raises:
        ValueError if the question or options are invalid
    """
    question = sanitize_poll_question(question)
    options = sanitize_poll_options(options)

    now = clock.now()
    poll = Poll(
        question=question,
        created_by=user_id,
        creator_username=_creator_name(db, user_id, show_creator_name, creator_name),
        status=POLL_STATUS_ACTIVE,
        created_at=now,
        expires_at=now + timedelta(hours=config.settings.POLL_DURATION_HOURS),
        total_votes=0,
        push_count=0,
    )
    poll.options = [PollOption(option_text=text, votes=0, created_at=now) for text in options]

    try:
        db.add(poll)
        db.commit()
        db.refresh(poll)
    except Exception:
        db.rollback()
        raise

    change_hub.publish(ChangeEvent(table=TABLE_POLLS, event_type=INSERT, record_id=str(poll.id)))
    logger.info("poll_created", poll_id=poll.id, user_id=user_id, options=len(options))
    return poll


def _serialize_poll(poll: Poll, counts: Dict[int, int], user_vote: Optional[int],
                    is_saved: bool, now) -> Dict[str, Any]:
    tally = build_tally(poll, counts)
    return {
        "id": poll.id,
        "question": poll.question,
        "creator_username": poll.creator_username,
        "status": poll.status,
        "created_at": to_utc(poll.created_at),
        "expires_at": to_utc(poll.expires_at) if poll.expires_at else None,
        "time_left": format_time_left(poll.expires_at, now),
        "is_open": is_poll_open(poll.status, poll.expires_at, now),
        "total_votes": tally["total_votes"],
        "push_count": poll.push_count,
        "options": tally["options"],
        "has_voted": user_vote is not None,
        "user_vote": user_vote,
        "is_saved": is_saved,
    }


def _serialize_polls(db: Session, polls: List[Poll], user_id: Optional[str], now) -> List[Dict[str, Any]]:
    """Attach raw-count tallies and the user's own flags to a batch of polls."""
    poll_ids = [poll.id for poll in polls]
    counts = get_vote_counts_bulk(db, poll_ids)
    user_votes = get_user_votes_bulk(db, poll_ids, user_id)

    saved = set()
    if user_id is not None and poll_ids:
        saved = {
            poll_id for (poll_id,) in db.query(SavedPoll.poll_id)
            .filter(SavedPoll.user_id == user_id, SavedPoll.poll_id.in_(poll_ids))
        }

    return [
        _serialize_poll(poll, counts.get(poll.id, {}), user_votes.get(poll.id), poll.id in saved, now)
        for poll in polls
    ]


def _open_filter(now):
    return (Poll.status == POLL_STATUS_ACTIVE) & (Poll.expires_at.is_(None) | (Poll.expires_at > now))


def _closed_filter(now):
    # Expired polls count as archived even before anything rewrites their status
    return or_(Poll.status == POLL_STATUS_ARCHIVED, Poll.expires_at <= now)


def list_polls(
    db: Session,
    user_id: Optional[str] = None,
    status: str = POLL_STATUS_ACTIVE,
    sort: str = POLL_SORT_NEW,
    limit: int = 50,
    clock: Clock = system_clock,
) -> List[Dict[str, Any]]:
    """Open ("active") or closed ("archived") polls, minus the ones the user hid.

    sort is "new" (newest first), "popular" (most votes, counted from raw
    vote rows) or "hot" (most pushes). Ties fall back to newest first.
    """
    now = clock.now()
    query = (
        db.query(Poll)
        .options(selectinload(Poll.options))
        .filter(_open_filter(now) if status == POLL_STATUS_ACTIVE else _closed_filter(now))
    )

    if user_id is not None:
        hidden = select(HiddenPoll.poll_id).where(HiddenPoll.user_id == user_id)
        query = query.filter(Poll.id.not_in(hidden))

    if sort == POLL_SORT_POPULAR:
        vote_counts = (
            select(UserVote.poll_id, func.count(UserVote.id).label("votes"))
            .group_by(UserVote.poll_id)
            .subquery()
        )
        query = query.outerjoin(vote_counts, vote_counts.c.poll_id == Poll.id).order_by(
            func.coalesce(vote_counts.c.votes, 0).desc()
        )
    elif sort == POLL_SORT_HOT:
        query = query.order_by(Poll.push_count.desc())

    polls = query.order_by(Poll.created_at.desc(), Poll.id.desc()).limit(limit).all()
    return _serialize_polls(db, polls, user_id, now)


def list_created_polls(db: Session, user_id: str, clock: Clock = system_clock) -> List[Dict[str, Any]]:
    """Every poll the user created, open or not, newest first."""
    polls = (
        db.query(Poll)
        .options(selectinload(Poll.options))
        .filter(Poll.created_by == user_id)
        .order_by(Poll.created_at.desc(), Poll.id.desc())
        .all()
    )
    return _serialize_polls(db, polls, user_id, clock.now())


def list_voted_polls(db: Session, user_id: str, clock: Clock = system_clock) -> List[Dict[str, Any]]:
    """Polls the user voted in, most recent vote first."""
    polls = (
        db.query(Poll)
        .join(UserVote, UserVote.poll_id == Poll.id)
        .options(selectinload(Poll.options))
        .filter(UserVote.user_id == user_id)
        .order_by(UserVote.updated_at.desc(), Poll.id.desc())
        .all()
    )
    return _serialize_polls(db, polls, user_id, clock.now())


def get_poll(db: Session, poll_id: int, user_id: Optional[str] = None,
             clock: Clock = system_clock) -> Dict[str, Any]:
    """One poll with tallies and the user's flags.

    Raises:
        PollNotFoundError
    """
    poll = db.get(Poll, poll_id)
    if poll is None:
        raise PollNotFoundError()
    return _serialize_polls(db, [poll], user_id, clock.now())[0]


def get_archived_poll(db: Session, poll_id: int, user_id: Optional[str] = None,
                      clock: Clock = system_clock) -> Dict[str, Any]:
    """Look up a closed poll by id (archive search).

    Raises:
        PollNotFoundError: no such poll, or it is still open
    """
    now = clock.now()
    poll = db.query(Poll).filter(Poll.id == poll_id, _closed_filter(now)).first()
    if poll is None:
        raise PollNotFoundError()
    return _serialize_polls(db, [poll], user_id, now)[0]


def _require_poll(db: Session, poll_id: int) -> Poll:
    poll = db.get(Poll, poll_id)
    if poll is None:
        raise PollNotFoundError()
    return poll


def save_poll(db: Session, user_id: str, poll_id: int) -> bool:
    """Bookmark a poll. Returns False if it was already saved."""
    _require_poll(db, poll_id)

    existing = db.query(SavedPoll).filter(
        SavedPoll.poll_id == poll_id, SavedPoll.user_id == user_id
    ).first()
    if existing is not None:
        return False

    try:
        db.add(SavedPoll(poll_id=poll_id, user_id=user_id))
        db.commit()
    except IntegrityError:
        # Saved concurrently from another tab
        db.rollback()
        return False

    logger.info("poll_saved", poll_id=poll_id, user_id=user_id)
    return True


def unsave_poll(db: Session, user_id: str, poll_id: int) -> bool:
    """Remove a bookmark. Returns False if the poll was not saved."""
    deleted = db.query(SavedPoll).filter(
        SavedPoll.poll_id == poll_id, SavedPoll.user_id == user_id
    ).delete(synchronize_session=False)
    db.commit()
    return deleted > 0


def list_saved_polls(db: Session, user_id: str, clock: Clock = system_clock) -> List[Dict[str, Any]]:
    """The user's saved polls, most recently saved first."""
    polls = (
        db.query(Poll)
        .join(SavedPoll, SavedPoll.poll_id == Poll.id)
        .options(selectinload(Poll.options))
        .filter(SavedPoll.user_id == user_id)
        .order_by(SavedPoll.saved_at.desc(), SavedPoll.id.desc())
        .all()
    )
    return _serialize_polls(db, polls, user_id, clock.now())


def hide_poll(db: Session, user_id: str, poll_id: int) -> bool:
    """Hide a poll from the user's listings. Returns False if already hidden."""
    _require_poll(db, poll_id)

    existing = db.query(HiddenPoll).filter(
        HiddenPoll.poll_id == poll_id, HiddenPoll.user_id == user_id
    ).first()
    if existing is not None:
        return False

    try:
        db.add(HiddenPoll(poll_id=poll_id, user_id=user_id))
        db.commit()
    except IntegrityError:
        db.rollback()
        return False

    logger.info("poll_hidden", poll_id=poll_id, user_id=user_id)
    return True


def count_open_polls(db: Session, clock: Clock = system_clock) -> int:
    """Active polls whose expiry has not passed yet."""
    return db.query(Poll).filter(_open_filter(clock.now())).count()
