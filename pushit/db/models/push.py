"""Push (poll boost) models."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint

from pushit.db.base import Base


class UserPush(Base):
    __tablename__ = "user_pushes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    pushed_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    __table_args__ = (UniqueConstraint("poll_id", "user_id", name="uq_user_pushes_poll_user"),)


class DailyPushLimit(Base):
    __tablename__ = "daily_push_limits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    push_date = Column(Date, nullable=False)
    push_count = Column(Integer, nullable=False, default=0)
    max_pushes = Column(Integer, nullable=False, default=3)

    __table_args__ = (UniqueConstraint("user_id", "push_date", name="uq_daily_push_limits_user_date"),)
