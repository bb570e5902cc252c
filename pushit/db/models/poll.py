"""Poll model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, DateTime, Index, Integer, String
from sqlalchemy.orm import relationship

from pushit.core.constants import POLL_STATUS_ACTIVE
from pushit.db.base import Base


class Poll(Base):
    __tablename__ = "polls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question = Column(String(200), nullable=False)
    created_by = Column(String(64), nullable=False)
    creator_username = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default=POLL_STATUS_ACTIVE)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Denormalized caches, refreshed after votes/pushes; never authoritative
    total_votes = Column(Integer, nullable=False, default=0)
    push_count = Column(Integer, nullable=False, default=0)

    # Relationships
    options = relationship(
        "PollOption", back_populates="poll", cascade="all, delete-orphan",
        order_by="PollOption.id",
    )
    votes = relationship("UserVote", back_populates="poll", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_polls_status_created", "status", "created_at"),
        Index("idx_polls_created_by", "created_by"),
    )
