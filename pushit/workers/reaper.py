"""Background sweep of stale hold sessions.

Counts never include lapsed holds (the live predicate filters them), but the
rows stay active until something ends them. The reaper does that every
HOLD_SWEEP_INTERVAL seconds and purges ended rows past retention.
"""
import asyncio
from typing import Callable, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pushit.core.clock import Clock, system_clock
from pushit.db.session import SessionLocal
from pushit.services.holds import sweep_stale_holds

logger = structlog.get_logger(__name__)


class HoldReaper:
    """Runs sweep_stale_holds periodically on the event loop."""

    def __init__(
        self,
        interval: float,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Clock = system_clock,
    ):
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self._interval = interval
        self._session_factory = session_factory
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        """Run one sweep in a fresh session. Returns holds reaped."""
        db = self._session_factory()
        try:
            return sweep_stale_holds(db, clock=self._clock)
        finally:
            db.close()

    async def _loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    # Sync SQLAlchemy; keep it off the event loop
                    await asyncio.to_thread(self.sweep_once)
                except SQLAlchemyError as e:
                    # Transient database trouble; the next round retries
                    logger.warning("hold_sweep_failed", error=str(e))
        except asyncio.CancelledError:
            pass

    def start(self) -> None:
        if not self.running:
            logger.info("hold_reaper_started", interval=self._interval)
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self.running:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("hold_reaper_stopped")
        self._task = None
