"""
In-process change notifications for shared tables.

Services publish a ChangeEvent after every committed write to a shared table
(button_holds, user_votes, polls). Two kinds of consumers listen:

- Listeners: plain callables run synchronously in the publishing thread.
  Used for cache invalidation so the next read recomputes from the database.
- Subscriptions: per-connection asyncio queues feeding SSE streams. Writes
  happen in FastAPI's threadpool, so events are handed to each subscriber's
  event loop with call_soon_threadsafe.

Delivery is best effort. A slow SSE client whose queue is full simply misses
events; the SSE stream reconciles periodically to cover missed events.
"""
import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one row (or a batch of rows) of a table."""

    table: str
    event_type: str
    record_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def matches(self, table: Optional[str], predicate: Optional[Callable[["ChangeEvent"], bool]]) -> bool:
        if table is not None and self.table != table:
            return False
        if predicate is not None and not predicate(self):
            return False
        return True


class Subscription:
    """Queue of change events for a single async consumer."""

    def __init__(
        self,
        hub: "ChangeHub",
        loop: asyncio.AbstractEventLoop,
        table: Optional[str],
        predicate: Optional[Callable[[ChangeEvent], bool]],
        max_queue: int,
    ):
        self._hub = hub
        self.loop = loop
        self.table = table
        self.predicate = predicate
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.dropped = 0

    def _offer(self, event: ChangeEvent) -> None:
        # Runs on the subscriber's loop
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1

    async def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Next event, or None if nothing arrived within timeout."""
        try:
            if timeout is None:
                return await self.queue.get()
            return await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def drain(self) -> List[ChangeEvent]:
        """Take every queued event without waiting."""
        events = []
        while True:
            try:
                events.append(self.queue.get_nowait())
            except asyncio.QueueEmpty:
                return events

    def close(self) -> None:
        self._hub.unsubscribe(self)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class ChangeHub:
    """Fan-out of table change events to listeners and async subscribers."""

    def __init__(self, max_queue: int = 100):
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []
        self._listeners: List[Callable[[ChangeEvent], None]] = []
        self._max_queue = max_queue

    def add_listener(self, listener: Callable[[ChangeEvent], None]) -> Callable[[], None]:
        """Register a synchronous listener. Returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def subscribe(
        self,
        table: Optional[str] = None,
        predicate: Optional[Callable[[ChangeEvent], bool]] = None,
    ) -> Subscription:
        """
        Subscribe the running event loop to changes of a table.

        Must be called from inside a coroutine. Use as an async context
        manager, or call close() when the consumer goes away.
        """
        subscription = Subscription(
            self, asyncio.get_running_loop(), table, predicate, self._max_queue
        )
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver an event. Safe to call from any thread."""
        with self._lock:
            listeners = list(self._listeners)
            subscriptions = list(self._subscriptions)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                # A broken listener must not block delivery to the rest
                logger.exception("change_listener_failed", table=event.table)

        for subscription in subscriptions:
            if not event.matches(subscription.table, subscription.predicate):
                continue
            try:
                subscription.loop.call_soon_threadsafe(subscription._offer, event)
            except RuntimeError:
                # Subscriber's loop is closed; the consumer is gone
                self.unsubscribe(subscription)

    def clear(self) -> None:
        with self._lock:
            self._subscriptions.clear()
            self._listeners.clear()


# Global hub shared by the services, the SSE endpoints and the cache
change_hub = ChangeHub()
