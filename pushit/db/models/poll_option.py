"""PollOption model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from pushit.db.base import Base


class PollOption(Base):
    __tablename__ = "poll_options"

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    option_text = Column(String(100), nullable=False)
    votes = Column(Integer, nullable=False, default=0)  # cache of COUNT(user_votes)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    poll = relationship("Poll", back_populates="options")

    __table_args__ = (Index("idx_poll_options_poll", "poll_id"),)
