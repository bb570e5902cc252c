"""Database base class and model imports."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models here for Alembic to detect them
from pushit.db.models.hold_session import HoldSession  # noqa: F401, E402
from pushit.db.models.poll import Poll  # noqa: F401, E402
from pushit.db.models.poll_option import PollOption  # noqa: F401, E402
from pushit.db.models.user_vote import UserVote  # noqa: F401, E402
from pushit.db.models.saved_poll import SavedPoll  # noqa: F401, E402
from pushit.db.models.hidden_poll import HiddenPoll  # noqa: F401, E402
from pushit.db.models.push import UserPush, DailyPushLimit  # noqa: F401, E402
from pushit.db.models.profile import Profile  # noqa: F401, E402
