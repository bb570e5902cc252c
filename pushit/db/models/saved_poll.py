"""SavedPoll model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from pushit.db.base import Base


class SavedPoll(Base):
    __tablename__ = "saved_polls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    saved_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    poll = relationship("Poll")

    __table_args__ = (UniqueConstraint("poll_id", "user_id", name="uq_saved_polls_poll_user"),)
