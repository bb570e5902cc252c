"""Hold-to-vote confirmation.

A vote is only sent after the user keeps an option pressed for
VOTE_HOLD_DURATION seconds. Letting go earlier cancels without any effect on
the poll. While an option is held the controller also keeps a poll-option
hold row on the server so other clients can see the press; that row is best
effort and never blocks or decides the vote.

    IDLE --press--> HOLDING --tick/release at >= DURATION--> COMMITTING --> IDLE
                       |                                        (COMMITTED or FAILED)
                       +--release before DURATION--> IDLE (CANCELLED)
"""
import asyncio
import enum
from datetime import datetime
from typing import Dict, Iterable, Optional, Set

import structlog

from pushit.client.backend import Backend, BackendError
from pushit.client.store import StateStore
from pushit.core import config
from pushit.core.clock import Clock, system_clock
from pushit.core.constants import POLL_STATUS_ACTIVE, POLL_STATUS_ARCHIVED, TARGET_POLL_OPTION
from pushit.core.exceptions import (
    AlreadyVotedError,
    InvalidOptionError,
    PollClosedError,
    PreconditionError,
    PushItError,
)
from pushit.core.utils import is_poll_open

logger = structlog.get_logger(__name__)

GENERIC_VOTE_FAILURE = "Could not record your vote. Please try again."


class HoldState(enum.Enum):
    IDLE = "idle"
    HOLDING = "holding"
    COMMITTING = "committing"


class HoldOutcome(enum.Enum):
    COMMITTED = "committed"
    CANCELLED = "cancelled"
    FAILED = "failed"


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class VoteHoldController:
    """Hold-to-vote state machine for one user on one poll."""

    def __init__(
        self,
        backend: Backend,
        poll_id: int,
        option_ids: Iterable[int],
        expires_at: Optional[datetime] = None,
        status: str = POLL_STATUS_ACTIVE,
        user_vote: Optional[int] = None,
        store: Optional[StateStore] = None,
        clock: Clock = system_clock,
        duration: Optional[float] = None,
        tick_interval: Optional[float] = None,
    ):
        self._backend = backend
        self.poll_id = poll_id
        self.option_ids = frozenset(option_ids)
        self.expires_at = _parse_datetime(expires_at)
        self.status = status
        self.user_vote = user_vote
        self.edit_mode = False
        self.store = store or StateStore()
        self._clock = clock
        self.duration = duration if duration is not None else config.settings.VOTE_HOLD_DURATION
        self._tick_interval = tick_interval or config.settings.VOTE_HOLD_TICK_INTERVAL

        self.state = HoldState.IDLE
        self.option_id: Optional[int] = None
        self._started: Optional[float] = None
        self._countdown_task: Optional[asyncio.Task] = None
        self._hold_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self.last_outcome: Optional[HoldOutcome] = None

    @classmethod
    def from_poll(cls, backend: Backend, poll: Dict, **kwargs) -> "VoteHoldController":
        """Build a controller from a poll as returned by GET /polls/{id}."""
        return cls(
            backend,
            poll_id=poll["id"],
            option_ids=[option["option_id"] for option in poll["options"]],
            expires_at=poll.get("expires_at"),
            status=poll.get("status", POLL_STATUS_ACTIVE),
            user_vote=poll.get("user_vote"),
            **kwargs,
        )

    @property
    def is_open(self) -> bool:
        return is_poll_open(self.status, self.expires_at, self._clock.now())

    @property
    def has_voted(self) -> bool:
        return self.user_vote is not None

    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return self._clock.monotonic() - self._started

    @property
    def progress(self) -> float:
        """0.0 to 1.0 share of the hold duration completed."""
        if self.state == HoldState.IDLE:
            return 0.0
        if self.duration <= 0:
            return 1.0
        return min(1.0, self.elapsed() / self.duration)

    def _publish(self) -> None:
        self.store.set(vote_hold={
            "poll_id": self.poll_id,
            "option_id": self.option_id,
            "state": self.state.value,
            "progress": round(self.progress, 3),
            "edit_mode": self.edit_mode,
            "user_vote": self.user_vote,
        })

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def press(self, option_id: int) -> bool:
        """Start holding an option.

        Returns False (and changes nothing) while another press is in
        progress.

        Raises:
            PollClosedError: the poll no longer accepts votes
            AlreadyVotedError: the user voted and is not editing
            InvalidOptionError: option_id is not part of this poll
        """
        if self.state != HoldState.IDLE:
            return False

        if not self.is_open:
            self.store.notify(PollClosedError.message, "error")
            raise PollClosedError()
        if self.has_voted and not self.edit_mode:
            self.store.notify(AlreadyVotedError.message, "error")
            raise AlreadyVotedError()
        if option_id not in self.option_ids:
            raise InvalidOptionError()

        self.state = HoldState.HOLDING
        self.option_id = option_id
        self._started = self._clock.monotonic()
        self.last_outcome = None
        self._publish()

        self._hold_task = self._spawn(self._start_hold_row(option_id))
        self._countdown_task = self._spawn(self._countdown())
        return True

    async def release(self) -> Optional[HoldOutcome]:
        """The user let go. Commits if the hold lasted long enough.

        Returns None when nothing was being held (including a commit that is
        already running).
        """
        if self.state != HoldState.HOLDING:
            return None

        if self.elapsed() >= self.duration:
            return await self._commit()

        self._reset()
        self._end_hold_row()
        self.last_outcome = HoldOutcome.CANCELLED
        logger.debug("vote_hold_cancelled", poll_id=self.poll_id)
        return HoldOutcome.CANCELLED

    async def tick(self) -> Optional[HoldOutcome]:
        """Advance the countdown; commits once the duration is reached."""
        if self.state != HoldState.HOLDING:
            return None
        if self.elapsed() >= self.duration:
            return await self._commit()
        self._publish()
        return None

    async def _countdown(self) -> None:
        try:
            while self.state == HoldState.HOLDING:
                await asyncio.sleep(self._tick_interval)
                await self.tick()
        except asyncio.CancelledError:
            pass

    async def _commit(self) -> Optional[HoldOutcome]:
        # Synchronous transition before the first await: whichever of
        # tick() and release() gets here second sees COMMITTING and stops
        if self.state != HoldState.HOLDING:
            return None
        self.state = HoldState.COMMITTING
        option_id = self.option_id
        self._publish()

        hold_id = self._finished_hold_id()

        try:
            await self._backend.cast_vote(self.poll_id, option_id, edit=self.edit_mode, hold_id=hold_id)
        except AlreadyVotedError:
            outcome = HoldOutcome.FAILED
            self.store.notify(AlreadyVotedError.message, "error")
            # Voted from another tab or device; pick up that vote
            await self._refresh_user_vote()
        except PollClosedError:
            outcome = HoldOutcome.FAILED
            self.status = POLL_STATUS_ARCHIVED
            self.store.notify(PollClosedError.message, "error")
        except (BackendError, PushItError) as e:
            outcome = HoldOutcome.FAILED
            self.store.notify(GENERIC_VOTE_FAILURE, "error")
            logger.warning("vote_commit_failed", poll_id=self.poll_id, error=str(e))
        else:
            outcome = HoldOutcome.COMMITTED
            self.user_vote = option_id
            self.edit_mode = False
            self.store.notify("Vote recorded!", "success")
            logger.info("vote_committed", poll_id=self.poll_id, option_id=option_id)

        if hold_id is None or outcome != HoldOutcome.COMMITTED:
            # The server only ends the hold row for us on a stored vote
            self._end_hold_row()
        else:
            self._hold_task = None

        self._reset()
        self.last_outcome = outcome
        return outcome

    async def _refresh_user_vote(self) -> None:
        try:
            poll = await self._backend.get_poll(self.poll_id)
        except (BackendError, PushItError) as e:
            logger.debug("poll_refresh_failed", poll_id=self.poll_id, error=str(e))
            return
        self.user_vote = poll.get("user_vote")

    def _finished_hold_id(self) -> Optional[str]:
        task = self._hold_task
        if task is None or not task.done() or task.cancelled():
            return None
        return task.result()

    def _reset(self) -> None:
        countdown = self._countdown_task
        self._countdown_task = None
        if countdown is not None and countdown is not asyncio.current_task():
            countdown.cancel()

        self.state = HoldState.IDLE
        self.option_id = None
        self._started = None
        self._publish()

    async def _start_hold_row(self, option_id: int) -> Optional[str]:
        try:
            data = await self._backend.start_hold(TARGET_POLL_OPTION, target_id=option_id)
        except (BackendError, PushItError) as e:
            logger.debug("option_hold_start_failed", option_id=option_id, error=str(e))
            return None
        return data["id"]

    def _end_hold_row(self) -> None:
        task = self._hold_task
        self._hold_task = None
        if task is not None:
            self._spawn(self._end_hold_row_when_started(task))

    async def _end_hold_row_when_started(self, start_task: asyncio.Task) -> None:
        try:
            hold_id = await start_task
        except asyncio.CancelledError:
            return
        if hold_id is None:
            return
        try:
            await self._backend.end_hold(hold_id)
        except (BackendError, PushItError) as e:
            logger.debug("option_hold_end_failed", hold_id=hold_id, error=str(e))

    def enter_edit_mode(self) -> None:
        """Allow the next completed hold to replace the existing vote.

        Raises:
            PreconditionError: the user has not voted yet
            PollClosedError: the poll no longer accepts votes
        """
        if not self.has_voted:
            raise PreconditionError("You have not voted in this poll yet")
        if not self.is_open:
            raise PollClosedError()
        self.edit_mode = True
        self._publish()

    def exit_edit_mode(self) -> None:
        self.edit_mode = False
        self._publish()

    async def close(self) -> None:
        """Abandon any press in progress and wait for background cleanup."""
        if self.state == HoldState.HOLDING:
            self._reset()
            self._end_hold_row()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
