"""UserVote model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from pushit.db.base import Base


class UserVote(Base):
    __tablename__ = "user_votes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    option_id = Column(Integer, ForeignKey("poll_options.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False)
    voted_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    poll = relationship("Poll", back_populates="votes")
    option = relationship("PollOption")

    __table_args__ = (
        Index("idx_user_votes_poll_option", "poll_id", "option_id"),
        Index("idx_user_votes_user", "user_id"),
        UniqueConstraint("poll_id", "user_id", name="uq_user_votes_poll_user"),
    )
