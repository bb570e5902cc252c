"""Database models."""
from pushit.db.models.hold_session import HoldSession
from pushit.db.models.poll import Poll
from pushit.db.models.poll_option import PollOption
from pushit.db.models.user_vote import UserVote
from pushit.db.models.saved_poll import SavedPoll
from pushit.db.models.hidden_poll import HiddenPoll
from pushit.db.models.push import UserPush, DailyPushLimit
from pushit.db.models.profile import Profile

__all__ = [
    "HoldSession",
    "Poll",
    "PollOption",
    "UserVote",
    "SavedPoll",
    "HiddenPoll",
    "UserPush",
    "DailyPushLimit",
    "Profile",
]
