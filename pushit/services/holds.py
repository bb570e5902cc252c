"""Hold session business logic.

A hold is a row in button_holds that says "this owner is pressing this
control right now". Clients keep a hold alive with heartbeats; a hold that
misses heartbeats for LIVENESS_TIMEOUT stops counting immediately (every
count applies the live predicate) and is deactivated by the next sweep.
"""
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy import and_, delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pushit.core import config
from pushit.core.clock import Clock, system_clock
from pushit.core.constants import (
    HOLD_TARGET_KINDS,
    TABLE_BUTTON_HOLDS,
    TARGET_GLOBAL_BUTTON,
    TARGET_POLL_OPTION,
    UNKNOWN_LOCATION,
)
from pushit.core.events import INSERT, UPDATE, ChangeEvent, change_hub
from pushit.core.exceptions import (
    AuthenticationRequiredError,
    HoldNotFoundError,
    HoldOwnershipError,
    InvalidOptionError,
    PollClosedError,
    PreconditionError,
)
from pushit.core.sanitization import sanitize_location_label
from pushit.core.utils import is_poll_open, to_utc
from pushit.db.models import HoldSession, PollOption

logger = structlog.get_logger(__name__)


def _liveness_timeout() -> float:
    return config.settings.LIVENESS_TIMEOUT


def _cutoff(now: datetime) -> datetime:
    return to_utc(now) - timedelta(seconds=_liveness_timeout())


def _live_filter(now: datetime):
    """SQL form of HoldSession.is_live: active and seen within the timeout."""
    cutoff = _cutoff(now)
    return and_(
        HoldSession.is_active.is_(True),
        or_(HoldSession.last_heartbeat_at > cutoff, HoldSession.started_at > cutoff),
    )


def _stale_filter(now: datetime):
    # Spelled out instead of not_(_live_filter) because a NULL heartbeat
    # would make the negation NULL and hide the row
    cutoff = _cutoff(now)
    return and_(
        HoldSession.is_active.is_(True),
        HoldSession.started_at <= cutoff,
        or_(HoldSession.last_heartbeat_at.is_(None), HoldSession.last_heartbeat_at <= cutoff),
    )


def _hold_payload(hold: HoldSession) -> Dict:
    return {
        "owner_id": hold.owner_id,
        "target_kind": hold.target_kind,
        "target_id": hold.target_id,
        "is_active": bool(hold.is_active),
    }


def _publish(event_type: str, hold: HoldSession) -> None:
    change_hub.publish(ChangeEvent(
        table=TABLE_BUTTON_HOLDS,
        event_type=event_type,
        record_id=hold.id,
        payload=_hold_payload(hold),
    ))


def _deactivate(hold: HoldSession, ended_at: datetime) -> None:
    ended_at = to_utc(ended_at)
    hold.is_active = False
    hold.ended_at = ended_at
    hold.duration_seconds = max(0.0, (ended_at - to_utc(hold.started_at)).total_seconds())


def _check_target(db: Session, owner_id: Optional[str], target_kind: str,
                  target_id: Optional[int], now: datetime) -> None:
    if target_kind not in HOLD_TARGET_KINDS:
        raise PreconditionError(f"Unknown hold target: {target_kind}")

    if target_kind == TARGET_GLOBAL_BUTTON:
        if target_id is not None:
            raise PreconditionError("Global button holds do not take a target")
        return

    if owner_id is None:
        raise AuthenticationRequiredError()

    option = db.get(PollOption, target_id) if target_id is not None else None
    if option is None:
        raise InvalidOptionError()

    poll = option.poll
    if not is_poll_open(poll.status, poll.expires_at, now):
        raise PollClosedError()


def start_hold(
    db: Session,
    owner_id: Optional[str],
    target_kind: str = TARGET_GLOBAL_BUTTON,
    target_id: Optional[int] = None,
    location_label: Optional[str] = None,
    device_id: Optional[str] = None,
    clock: Clock = system_clock,
    _retry_count: int = 0,
) -> HoldSession:
    """Start a hold for owner on a target.

    Any hold the owner still has active on the same target kind is ended
    first, so an owner never has two active holds of one kind. Anonymous
    holds (owner_id None) are only allowed on the global button.

    Args:
        _retry_count: Internal parameter to track retry attempts (max 3)

    Raises:
        AuthenticationRequiredError: anonymous poll-option hold
        InvalidOptionError: option does not exist
        PollClosedError: option belongs to a poll that no longer accepts votes
    """
    if _retry_count > 3:
        raise PreconditionError("Could not start hold, please try again")

    now = clock.now()
    _check_target(db, owner_id, target_kind, target_id, now)

    superseded: List[HoldSession] = []
    try:
        if owner_id is not None:
            superseded = (
                db.query(HoldSession)
                .filter(
                    HoldSession.owner_id == owner_id,
                    HoldSession.target_kind == target_kind,
                    HoldSession.is_active.is_(True),
                )
                .all()
            )
            for previous in superseded:
                _deactivate(previous, now)
            # The partial unique index must see the old rows inactive first
            db.flush()

        hold = HoldSession(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            target_kind=target_kind,
            target_id=target_id,
            device_id=device_id,
            started_at=now,
            last_heartbeat_at=now,
            is_active=True,
            location_label=sanitize_location_label(location_label),
        )
        db.add(hold)
        db.commit()
        db.refresh(hold)
    except IntegrityError:
        # Another request for the same owner won the race; supersede it
        db.rollback()
        return start_hold(db, owner_id, target_kind, target_id, location_label,
                          device_id, clock, _retry_count + 1)

    for previous in superseded:
        _publish(UPDATE, previous)
    _publish(INSERT, hold)

    logger.info(
        "hold_started",
        hold_id=hold.id,
        owner_id=owner_id,
        target_kind=target_kind,
        target_id=target_id,
        superseded=len(superseded),
    )
    return hold


def _get_owned_hold(db: Session, hold_id: str, owner_id: Optional[str]) -> Optional[HoldSession]:
    hold = db.get(HoldSession, hold_id)
    if hold is None:
        return None
    # Anonymous holds are guarded by their unguessable id alone
    if hold.owner_id is not None and hold.owner_id != owner_id:
        raise HoldOwnershipError()
    return hold


def renew_hold(db: Session, hold_id: str, owner_id: Optional[str],
               clock: Clock = system_clock) -> HoldSession:
    """Heartbeat: refresh last_heartbeat_at of a live hold.

    A hold that already lapsed is deactivated here rather than revived, and
    the caller is told it is gone.

    Raises:
        HoldNotFoundError: missing, ended or lapsed hold
        HoldOwnershipError: hold belongs to another owner
    """
    hold = _get_owned_hold(db, hold_id, owner_id)
    if hold is None or not hold.is_active:
        raise HoldNotFoundError()

    now = clock.now()
    if not hold.is_live(now, _liveness_timeout()):
        _deactivate(hold, hold.lease(_liveness_timeout()).reference)
        db.commit()
        _publish(UPDATE, hold)
        logger.info("hold_lapsed", hold_id=hold.id, owner_id=hold.owner_id)
        raise HoldNotFoundError()

    hold.last_heartbeat_at = now
    db.commit()
    db.refresh(hold)
    return hold


def end_hold(db: Session, hold_id: str, owner_id: Optional[str],
             clock: Clock = system_clock) -> bool:
    """End a hold. Returns False when there was nothing active to end."""
    hold = _get_owned_hold(db, hold_id, owner_id)
    if hold is None or not hold.is_active:
        return False

    _deactivate(hold, clock.now())
    db.commit()
    _publish(UPDATE, hold)

    logger.info(
        "hold_ended",
        hold_id=hold.id,
        owner_id=hold.owner_id,
        target_kind=hold.target_kind,
        duration_seconds=round(hold.duration_seconds, 2),
    )
    return True


def count_live_holds(db: Session, target_kind: str = TARGET_GLOBAL_BUTTON,
                     target_id: Optional[int] = None, clock: Clock = system_clock) -> int:
    """Number of live holds on a target kind (optionally one target)."""
    query = db.query(func.count(HoldSession.id)).filter(
        _live_filter(clock.now()),
        HoldSession.target_kind == target_kind,
    )
    if target_id is not None:
        query = query.filter(HoldSession.target_id == target_id)
    return query.scalar() or 0


def live_holds_by_location(db: Session, clock: Clock = system_clock) -> List[Tuple[str, int]]:
    """Live global-button holders grouped by location label, largest first."""
    label = func.coalesce(HoldSession.location_label, UNKNOWN_LOCATION)
    count = func.count(HoldSession.id)
    rows = (
        db.query(label, count)
        .filter(_live_filter(clock.now()), HoldSession.target_kind == TARGET_GLOBAL_BUTTON)
        .group_by(label)
        .order_by(count.desc(), label)
        .all()
    )
    return [(location, total) for location, total in rows]


def list_live_holds(db: Session, clock: Clock = system_clock) -> List[HoldSession]:
    """Every live hold, newest first (admin view)."""
    return (
        db.query(HoldSession)
        .filter(_live_filter(clock.now()))
        .order_by(HoldSession.started_at.desc())
        .all()
    )


def sweep_stale_holds(db: Session, clock: Clock = system_clock) -> int:
    """Deactivate holds that stopped heartbeating and purge old ended rows.

    A reaped hold's ended_at is the last moment its owner was seen, not the
    time of the sweep.

    Returns:
        int: number of holds deactivated
    """
    now = clock.now()
    stale = db.query(HoldSession).filter(_stale_filter(now)).all()
    for hold in stale:
        _deactivate(hold, hold.lease(_liveness_timeout()).reference)

    retention_cutoff = to_utc(now) - timedelta(minutes=config.settings.HOLD_RETENTION_MINUTES)
    purged = db.execute(
        delete(HoldSession)
        .where(HoldSession.is_active.is_(False), HoldSession.ended_at < retention_cutoff)
        .execution_options(synchronize_session=False)
    ).rowcount

    db.commit()

    for hold in stale:
        _publish(UPDATE, hold)

    if stale or purged:
        logger.info("hold_reaped", reaped=len(stale), purged=purged)
    return len(stale)
