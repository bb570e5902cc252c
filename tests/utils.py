"""Test helpers."""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from pushit.client.backend import Backend
from pushit.core.clock import Clock
from pushit.services.polls import create_poll


class FakeClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
        self._monotonic = 1000.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
        self._monotonic += seconds


def make_poll(db, clock, user_id="user-creator", question="Which snack is best?",
              options: Optional[List[str]] = None, **kwargs):
    """Create a poll through the service and return it."""
    return create_poll(
        db,
        user_id,
        question,
        options or ["Chips", "Fruit", "Cookies"],
        clock=clock,
        **kwargs,
    )


def option_ids(poll) -> List[int]:
    return [option.id for option in poll.options]


class FakeBackend(Backend):
    """In-memory Backend that records calls.

    Map a method name to an exception in `errors` to make that call
    raise, or hold `start_gate` closed to keep start_hold in flight.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.errors: Dict[str, Exception] = {}
        self.start_gate: Optional[asyncio.Event] = None
        self.vote_gate: Optional[asyncio.Event] = None
        self.stream_items: List[Dict] = []
        self.poll: Dict = {}
        self._next_id = 0

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        error = self.errors.get(name)
        if error is not None:
            raise error

    def called(self, name) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def start_hold(self, target_kind="global_button", target_id=None,
                         location_label=None, device_id=None):
        if self.start_gate is not None:
            await self.start_gate.wait()
        self._record("start_hold", target_kind, target_id, location_label)
        self._next_id += 1
        return {"id": f"hold-{self._next_id}", "target_kind": target_kind, "target_id": target_id}

    async def renew_hold(self, hold_id):
        self._record("renew_hold", hold_id)
        return {"id": hold_id}

    async def end_hold(self, hold_id):
        self._record("end_hold", hold_id)
        return True

    async def get_active_count(self):
        self._record("get_active_count")
        return 42

    async def cast_vote(self, poll_id, option_id, edit=False, hold_id=None):
        if self.vote_gate is not None:
            await self.vote_gate.wait()
        self._record("cast_vote", poll_id, option_id, edit, hold_id)
        return {"poll_id": poll_id, "option_id": option_id, "updated": edit}

    async def get_poll(self, poll_id):
        self._record("get_poll", poll_id)
        return dict(self.poll, id=poll_id)

    async def stream(self, path):
        self._record("stream", path)
        for item in self.stream_items:
            yield item
