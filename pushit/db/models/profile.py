"""Profile model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, DateTime, String

from pushit.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)  # identity provider subject
    username = Column(String(50), nullable=True, unique=True)
    email = Column(String(255), nullable=True)
    country = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True)
