"""Domain exceptions.

Every error a service raises on purpose is a PushItError. PushItError derives
from ValueError so callers can keep catching ValueError for "bad request"
style failures, while the API layer maps each subclass to a status code.
"""


class PushItError(ValueError):
    """Base class for expected, user-facing failures."""

    status_code = 400
    message = "Request could not be completed"

    def __init__(self, message: str = None):
        self.message = message or self.message
        super().__init__(self.message)

    def __str__(self):
        return self.message


class NotFoundError(PushItError):
    status_code = 404
    message = "Not found"


class PollNotFoundError(NotFoundError):
    message = "Poll not found"


class HoldNotFoundError(NotFoundError):
    message = "Hold not found"


class PreconditionError(PushItError):
    """Request is well formed but the current state does not allow it."""


class PollClosedError(PreconditionError):
    message = "This poll has ended"


class InvalidOptionError(PreconditionError):
    message = "Invalid option for this poll"


class AlreadyVotedError(PreconditionError):
    status_code = 409
    message = "You have already voted in this poll"


class AlreadyPushedError(PreconditionError):
    status_code = 409
    message = "You already pushed this poll"


class PushLimitReachedError(PreconditionError):
    status_code = 429
    message = "Daily push limit reached"


class HoldOwnershipError(PushItError):
    status_code = 403
    message = "This hold belongs to someone else"


class AuthenticationRequiredError(PushItError):
    status_code = 401
    message = "You must be logged in to do that"


class UsernameTakenError(PreconditionError):
    status_code = 409
    message = "Username is already taken"


class RateLimitedError(PushItError):
    """Too many requests from this client; retrying later may succeed."""

    status_code = 429
    message = "Too many requests, slow down"
