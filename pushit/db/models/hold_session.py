"""HoldSession model."""
import uuid
from datetime import datetime, timedelta, timezone as tz
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, text

from pushit.core.constants import TARGET_GLOBAL_BUTTON
from pushit.core.lease import Lease
from pushit.db.base import Base


class HoldSession(Base):
    """A client's claim that someone is pressing a control right now."""

    __tablename__ = "button_holds"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=True)  # NULL for anonymous global holds
    target_kind = Column(String(20), nullable=False, default=TARGET_GLOBAL_BUTTON)
    target_id = Column(Integer, ForeignKey("poll_options.id", ondelete="CASCADE"), nullable=True)
    device_id = Column(String(64), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
    last_heartbeat_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    location_label = Column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_button_holds_live", "target_kind", "is_active"),
        Index("idx_button_holds_owner", "owner_id"),
        # At most one active hold per owner and target kind
        Index(
            "uq_button_holds_active_owner",
            "owner_id",
            "target_kind",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    def lease(self, timeout_seconds: float) -> Lease:
        return Lease(
            started_at=self.started_at,
            timeout=timedelta(seconds=timeout_seconds),
            renewed_at=self.last_heartbeat_at,
        )

    def is_live(self, now: datetime, timeout_seconds: float) -> bool:
        return bool(self.is_active) and self.lease(timeout_seconds).is_live(now)
