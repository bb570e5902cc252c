"""HiddenPoll model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from pushit.db.base import Base


class HiddenPoll(Base):
    __tablename__ = "hidden_polls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    hidden_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    __table_args__ = (UniqueConstraint("poll_id", "user_id", name="uq_hidden_polls_poll_user"),)
