"""Application constants.

Values that are part of the data model or wire format rather than tunables.
Tunable timings (heartbeat interval, liveness timeout, hold duration) live in
pushit.core.config.Settings so they can be overridden per environment.
"""

# Hold targets
# A hold either claims the global "push it" button or one option of a poll
TARGET_GLOBAL_BUTTON = "global_button"
TARGET_POLL_OPTION = "poll_option"
HOLD_TARGET_KINDS = (TARGET_GLOBAL_BUTTON, TARGET_POLL_OPTION)

# Poll status values
POLL_STATUS_ACTIVE = "active"
POLL_STATUS_ARCHIVED = "archived"
POLL_STATUSES = (POLL_STATUS_ACTIVE, POLL_STATUS_ARCHIVED)

# Poll list orderings: newest, most votes, most pushes
POLL_SORT_NEW = "new"
POLL_SORT_POPULAR = "popular"
POLL_SORT_HOT = "hot"
POLL_SORTS = (POLL_SORT_NEW, POLL_SORT_POPULAR, POLL_SORT_HOT)

# Poll shape limits
MIN_POLL_OPTIONS = 2
MAX_POLL_OPTIONS = 5
MIN_QUESTION_LENGTH = 10
MAX_QUESTION_LENGTH = 200
MAX_OPTION_LENGTH = 100

# Location label used when geolocation gives nothing back
UNKNOWN_LOCATION = "Unknown"

# Name shown for polls whose creator chose to stay hidden
ANONYMOUS_CREATOR = "Anonymous"

# Change-hub table names (mirrors __tablename__ of the models)
TABLE_BUTTON_HOLDS = "button_holds"
TABLE_USER_VOTES = "user_votes"
TABLE_POLLS = "polls"

# Cache keys
CACHE_KEY_ACTIVE_HOLDERS = "active_holders"
CACHE_KEY_POLL_TALLIES = "poll_tallies:{poll_id}"

# JWT Token Configuration
# Admin cookie expiration time in minutes (8 hours)
ACCESS_TOKEN_EXPIRE_MINUTES = 480
