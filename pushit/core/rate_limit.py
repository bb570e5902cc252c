"""Rate limiting configuration.

Signed-in callers are limited per user so people behind one NAT do not share
a budget; anonymous callers (global button holders) are limited per IP.
"""
import os

import jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from pushit.core import config


def get_client_ip(request):
    """Get client IP for rate limiting, considering proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


def get_rate_limit_key(request):
    """user:<id> for a valid bearer token, ip:<addr> otherwise."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            payload = jwt.decode(
                token.strip(), config.settings.SECRET_KEY, algorithms=[config.settings.ALGORITHM]
            )
        except jwt.PyJWTError:
            # The endpoint rejects the token itself; count the attempt by IP
            payload = {}
        if payload.get("sub"):
            return f"user:{payload['sub']}"
    return f"ip:{get_client_ip(request)}"


# Uses Redis if REDIS_URL is set, falls back to memory for local dev
limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=["300/minute"],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    strategy="fixed-window"
)

# A holding client sends one heartbeat every 3 seconds (20/minute), and a
# button masher starts and ends holds quickly; leave room for both plus NAT
RATE_LIMITS = {
    "hold_start": "120/minute",
    "hold_heartbeat": "120/minute",
    "vote": "60/minute",
    "poll_create": "10/minute",
    "push": "30/minute",
    "read": "300/minute",
}
