"""Vote business logic."""
from typing import Dict, Iterable, List, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pushit.core.clock import Clock, system_clock
from pushit.core.constants import TABLE_USER_VOTES
from pushit.core.events import INSERT, UPDATE, ChangeEvent, change_hub
from pushit.core.exceptions import (
    AlreadyVotedError,
    InvalidOptionError,
    PollClosedError,
    PollNotFoundError,
    PushItError,
)
from pushit.core.utils import is_poll_open, percentage
from pushit.db.models import Poll, PollOption, UserVote
from pushit.db.session import check_dialect
from pushit.services.holds import end_hold

logger = structlog.get_logger(__name__)

_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def _upsert_vote(db: Session, poll_id: int, option_id: int, user_id: str, now) -> None:
    """INSERT ... ON CONFLICT (poll_id, user_id) DO UPDATE for the bound dialect."""
    dialect = db.get_bind().dialect.name
    check_dialect(dialect)
    insert = _INSERTS[dialect]

    stmt = insert(UserVote).values(
        poll_id=poll_id,
        option_id=option_id,
        user_id=user_id,
        voted_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[UserVote.poll_id, UserVote.user_id],
        set_={"option_id": option_id, "updated_at": now},
    )
    db.execute(stmt)


def get_vote_counts_bulk(db: Session, poll_ids: Iterable[int]) -> Dict[int, Dict[int, int]]:
    """
    Raw vote counts for several polls in one query.

    Returns:
        Dict mapping poll_id -> {option_id -> count}. Options without votes
        are absent; callers default them to 0.
    """
    poll_ids = list(poll_ids)
    if not poll_ids:
        return {}

    rows = (
        db.query(UserVote.poll_id, UserVote.option_id, func.count(UserVote.id))
        .filter(UserVote.poll_id.in_(poll_ids))
        .group_by(UserVote.poll_id, UserVote.option_id)
        .all()
    )

    counts: Dict[int, Dict[int, int]] = {}
    for poll_id, option_id, count in rows:
        counts.setdefault(poll_id, {})[option_id] = count
    return counts


def build_tally(poll: Poll, counts: Dict[int, int]) -> Dict:
    """Tally dict for a poll from its raw per-option counts."""
    total = sum(counts.get(option.id, 0) for option in poll.options)
    return {
        "poll_id": poll.id,
        "total_votes": total,
        "options": [
            {
                "option_id": option.id,
                "option_text": option.option_text,
                "votes": counts.get(option.id, 0),
                "percentage": percentage(counts.get(option.id, 0), total),
            }
            for option in poll.options
        ],
    }


def get_vote_tallies(db: Session, poll_id: int) -> Dict:
    """Per-option counts and percentages computed from raw vote rows.

    The denormalized counters on polls/poll_options are never read here.

    Raises:
        PollNotFoundError
    """
    poll = db.get(Poll, poll_id)
    if poll is None:
        raise PollNotFoundError()

    counts = get_vote_counts_bulk(db, [poll_id]).get(poll_id, {})
    return build_tally(poll, counts)


def get_user_vote(db: Session, poll_id: int, user_id: Optional[str]) -> Optional[int]:
    """The option the user voted for, or None."""
    if user_id is None:
        return None
    return (
        db.query(UserVote.option_id)
        .filter(UserVote.poll_id == poll_id, UserVote.user_id == user_id)
        .scalar()
    )


def get_user_votes_bulk(db: Session, poll_ids: List[int], user_id: Optional[str]) -> Dict[int, int]:
    """Map poll_id -> option_id for the polls a user voted in."""
    if user_id is None or not poll_ids:
        return {}
    rows = (
        db.query(UserVote.poll_id, UserVote.option_id)
        .filter(UserVote.user_id == user_id, UserVote.poll_id.in_(poll_ids))
        .all()
    )
    return {poll_id: option_id for poll_id, option_id in rows}


def refresh_vote_counters(db: Session, poll: Poll) -> None:
    """Rewrite the denormalized vote counters of a poll from raw rows."""
    counts = get_vote_counts_bulk(db, [poll.id]).get(poll.id, {})
    for option in poll.options:
        option.votes = counts.get(option.id, 0)
    poll.total_votes = sum(counts.values())


def cast_vote(
    db: Session,
    poll_id: int,
    option_id: int,
    user_id: str,
    edit: bool = False,
    hold_id: Optional[str] = None,
    clock: Clock = system_clock,
) -> Dict:
    """Record the user's vote in a poll.

    A first vote inserts; with edit=True an existing vote is moved to the new
    option through an upsert, so a user never has more than one row per poll.
    If hold_id names the poll-option hold that confirmed the vote, that hold
    is ended once the vote is stored.

    Returns:
        dict with poll_id, option_id and updated (True when an earlier vote
        was changed)

    Raises:
        PollNotFoundError, PollClosedError, InvalidOptionError, AlreadyVotedError
    """
    now = clock.now()

    poll = db.get(Poll, poll_id)
    if poll is None:
        raise PollNotFoundError()

    if not is_poll_open(poll.status, poll.expires_at, now):
        raise PollClosedError()

    option = (
        db.query(PollOption)
        .filter(PollOption.id == option_id, PollOption.poll_id == poll_id)
        .first()
    )
    if option is None:
        raise InvalidOptionError()

    existing = get_user_vote(db, poll_id, user_id)
    if existing is not None and not edit:
        raise AlreadyVotedError()

    try:
        if edit:
            _upsert_vote(db, poll_id, option_id, user_id, now)
        else:
            db.add(UserVote(
                poll_id=poll_id,
                option_id=option_id,
                user_id=user_id,
                voted_at=now,
                updated_at=now,
            ))
            db.flush()

        # Counters are a cache; raw rows stay authoritative
        refresh_vote_counters(db, poll)
        db.commit()
    except IntegrityError:
        db.rollback()
        # Concurrent first vote from the same user: the unique constraint
        # (poll_id, user_id) rejected the second insert
        raise AlreadyVotedError()

    change_hub.publish(ChangeEvent(
        table=TABLE_USER_VOTES,
        event_type=UPDATE if existing is not None else INSERT,
        record_id=f"{poll_id}:{user_id}",
        payload={"poll_id": poll_id, "option_id": option_id},
    ))

    logger.info(
        "vote_cast",
        poll_id=poll_id,
        option_id=option_id,
        user_id=user_id,
        edit=edit,
        previous_option_id=existing,
    )

    if hold_id:
        try:
            end_hold(db, hold_id, user_id, clock=clock)
        except PushItError as e:
            # The vote already landed; a foreign or bogus hold id does not undo it
            logger.warning("vote_hold_end_failed", hold_id=hold_id, error=str(e))

    return {"poll_id": poll_id, "option_id": option_id, "updated": existing is not None}
