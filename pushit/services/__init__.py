from .holds import (
    count_live_holds,
    end_hold,
    list_live_holds,
    live_holds_by_location,
    renew_hold,
    start_hold,
    sweep_stale_holds,
)
from .polls import (
    create_poll,
    get_poll,
    hide_poll,
    list_polls,
    list_saved_polls,
    save_poll,
    unsave_poll,
)
from .profiles import get_or_create_profile, update_profile
from .pushes import get_push_limits, push_poll
from .stats import get_global_stats, get_user_stats
from .votes import cast_vote, get_user_vote, get_vote_tallies

__all__ = [
    # holds
    "start_hold",
    "renew_hold",
    "end_hold",
    "count_live_holds",
    "live_holds_by_location",
    "list_live_holds",
    "sweep_stale_holds",
    # votes
    "cast_vote",
    "get_vote_tallies",
    "get_user_vote",
    # polls
    "create_poll",
    "list_polls",
    "get_poll",
    "save_poll",
    "unsave_poll",
    "list_saved_polls",
    "hide_poll",
    # pushes
    "get_push_limits",
    "push_poll",
    # stats
    "get_user_stats",
    "get_global_stats",
    # profiles
    "get_or_create_profile",
    "update_profile",
]
