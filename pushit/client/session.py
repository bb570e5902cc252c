"""Client side of the global hold button.

While the user holds the button the manager keeps one hold row alive on the
server by heartbeating every HEARTBEAT_INTERVAL seconds. Each heartbeat
renews the handle's local Lease as well, so the client knows when the server
will consider it gone even if heartbeats start failing.
"""
import asyncio
from datetime import timedelta
from typing import Optional

import structlog

from pushit.client.backend import Backend, BackendError
from pushit.client.store import StateStore
from pushit.core import config
from pushit.core.clock import Clock, system_clock
from pushit.core.constants import TARGET_GLOBAL_BUTTON
from pushit.core.exceptions import HoldNotFoundError, HoldOwnershipError, PushItError
from pushit.core.lease import Lease

logger = structlog.get_logger(__name__)

STARTING = "starting"
ACTIVE = "active"
ENDED = "ended"
LOST = "lost"  # reaped server-side while we still thought we held it


class SessionHandle:
    """One press of the global button, from start request to end."""

    def __init__(self, location_label: Optional[str] = None):
        self.hold_id: Optional[str] = None
        self.location_label = location_label
        self.state = STARTING
        self.lease: Optional[Lease] = None
        self.end_requested = False
        self._heartbeat_task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self.state == ACTIVE

    def __repr__(self) -> str:
        return f"<SessionHandle {self.hold_id or '?'} {self.state}>"


class HoldSessionManager:
    """Starts, heartbeats and ends the user's global-button hold.

    At most one session per manager is active; starting a new one ends the
    previous one first.

    Example:
        >>> manager = HoldSessionManager(HttpBackend(url), StateStore())
        >>> handle = await manager.start_session("Portugal")
        >>> ...  # button held
        >>> await manager.end_session(handle)
    """

    def __init__(
        self,
        backend: Backend,
        store: Optional[StateStore] = None,
        clock: Clock = system_clock,
        heartbeat_interval: Optional[float] = None,
        liveness_timeout: Optional[float] = None,
        device_id: Optional[str] = None,
    ):
        self._backend = backend
        self.store = store or StateStore()
        self._clock = clock
        self._heartbeat_interval = heartbeat_interval or config.settings.HEARTBEAT_INTERVAL
        self._liveness_timeout = liveness_timeout or config.settings.LIVENESS_TIMEOUT
        self._device_id = device_id
        self._current: Optional[SessionHandle] = None

    @property
    def current(self) -> Optional[SessionHandle]:
        return self._current

    async def start_session(self, location_label: Optional[str] = None) -> SessionHandle:
        """Create a hold row and start heartbeating it.

        Raises:
            BackendError: the hold could not be created; no session exists
        """
        if self._current is not None:
            await self.end_session(self._current)

        handle = SessionHandle(location_label)
        self._current = handle
        self.store.set(session_state=STARTING)

        try:
            data = await self._backend.start_hold(
                TARGET_GLOBAL_BUTTON,
                location_label=location_label,
                device_id=self._device_id,
            )
        except (BackendError, PushItError) as e:
            handle.state = ENDED
            if self._current is handle:
                self._current = None
                self.store.set(session_state=None, hold_id=None)
            self.store.notify("Could not start holding. Check your connection.", "error")
            logger.warning("session_start_failed", error=str(e))
            raise

        handle.hold_id = data["id"]
        handle.lease = Lease(
            started_at=self._clock.now(),
            timeout=timedelta(seconds=self._liveness_timeout),
        )

        if handle.end_requested:
            # end_session() was called while the start was in flight
            await self._finish(handle)
            return handle

        handle.state = ACTIVE
        handle._heartbeat_task = asyncio.create_task(self._heartbeat_loop(handle))
        self.store.set(session_state=ACTIVE, hold_id=handle.hold_id)
        logger.info("session_started", hold_id=handle.hold_id)
        return handle

    async def end_session(self, handle: Optional[SessionHandle] = None) -> None:
        """End a session. Safe to call repeatedly and on unfinished starts."""
        handle = handle or self._current
        if handle is None:
            return

        if handle.state == STARTING:
            handle.end_requested = True
            if self._current is handle:
                self._current = None
                self.store.set(session_state=None, hold_id=None)
            return

        if handle.state != ACTIVE:
            return

        await self._finish(handle)

    async def _finish(self, handle: SessionHandle) -> None:
        handle.state = ENDED
        if self._current is handle:
            self._current = None
            self.store.set(session_state=None, hold_id=None)

        await self._stop_heartbeat(handle)

        try:
            await self._backend.end_hold(handle.hold_id)
        except (BackendError, PushItError) as e:
            # The reaper ends it after LIVENESS_TIMEOUT anyway
            logger.warning("session_end_failed", hold_id=handle.hold_id, error=str(e))
        else:
            logger.info("session_ended", hold_id=handle.hold_id)

    async def _stop_heartbeat(self, handle: SessionHandle) -> None:
        task = handle._heartbeat_task
        handle._heartbeat_task = None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _mark_lost(self, handle: SessionHandle) -> None:
        handle.state = LOST
        handle._heartbeat_task = None
        if self._current is handle:
            self._current = None
            self.store.set(session_state=LOST, hold_id=None)
        self.store.notify("Connection lost. Press again to keep holding.", "warning")
        logger.info("session_lost", hold_id=handle.hold_id)

    async def _heartbeat_loop(self, handle: SessionHandle) -> None:
        try:
            while handle.state == ACTIVE:
                await asyncio.sleep(self._heartbeat_interval)
                if handle.state != ACTIVE:
                    return
                try:
                    await self._backend.renew_hold(handle.hold_id)
                except (HoldNotFoundError, HoldOwnershipError):
                    self._mark_lost(handle)
                    return
                except (BackendError, PushItError) as e:
                    # Rate limits and outages: keep trying while the lease lasts
                    logger.warning("heartbeat_failed", hold_id=handle.hold_id, error=str(e))
                    if not handle.lease.is_live(self._clock.now()):
                        # The server has stopped counting us by now
                        self._mark_lost(handle)
                        return
                else:
                    handle.lease.renew(self._clock.now())
        except asyncio.CancelledError:
            pass

    async def get_active_count(self) -> int:
        """Ask the server how many people hold the button right now."""
        count = await self._backend.get_active_count()
        self.store.set(active_count=count)
        return count

    async def watch_active_count(self) -> None:
        """Mirror the /sse/holds stream into the store until cancelled."""
        async for data in self._backend.stream("/sse/holds"):
            self.store.set(active_count=data["active_count"])

    async def close(self) -> None:
        """Best-effort end of the current session (app shutdown)."""
        if self._current is not None:
            await self.end_session(self._current)

    async def __aenter__(self) -> "HoldSessionManager":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
