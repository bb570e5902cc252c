"""Profile business logic."""
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pushit.core.exceptions import UsernameTakenError
from pushit.db.models import Profile

logger = structlog.get_logger(__name__)


def get_or_create_profile(db: Session, user_id: str, email: Optional[str] = None) -> Profile:
    """Profile for an identity, created on first sight."""
    profile = db.get(Profile, user_id)
    if profile is not None:
        return profile

    profile = Profile(id=user_id, email=email)
    try:
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except IntegrityError:
        # First requests of a new user can race; the other one created it
        db.rollback()
        return db.get(Profile, user_id)

    logger.info("profile_created", user_id=user_id)
    return profile


def update_profile(db: Session, user_id: str, username: Optional[str] = None,
                   country: Optional[str] = None, email: Optional[str] = None) -> Profile:
    """Change username and/or country. None leaves a field untouched.

    Raises:
        UsernameTakenError
    """
    profile = get_or_create_profile(db, user_id, email)

    if username is not None and username != profile.username:
        taken = db.query(Profile.id).filter(
            Profile.username == username, Profile.id != user_id
        ).first()
        if taken is not None:
            raise UsernameTakenError()
        profile.username = username

    if country is not None:
        profile.country = country

    profile.updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise UsernameTakenError()

    db.refresh(profile)
    logger.info("profile_updated", user_id=user_id)
    return profile
