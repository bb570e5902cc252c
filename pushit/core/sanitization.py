"""Input sanitization utilities."""
import re
from typing import List, Optional

from pushit.core.constants import (
    MAX_OPTION_LENGTH,
    MAX_POLL_OPTIONS,
    MAX_QUESTION_LENGTH,
    MIN_POLL_OPTIONS,
    MIN_QUESTION_LENGTH,
    UNKNOWN_LOCATION,
)


MAX_LOCATION_LENGTH = 100
MAX_USERNAME_LENGTH = 50
MAX_DEVICE_ID_LENGTH = 64

# Script-ish content that must never be stored, even with tags stripped
_DANGEROUS_PATTERNS = [
    re.compile(r'javascript:', re.IGNORECASE),
    re.compile(r'\bon\w+\s*=', re.IGNORECASE),
]


def sanitize_text(text: str, max_length: Optional[int] = None, strip_html: bool = True) -> str:
    """
    Sanitize free text input.

    Strips HTML tags and normalizes whitespace. HTML entities are not escaped
    because clients escape on render.

    Raises:
        ValueError: If text exceeds max_length or contains dangerous patterns
    """
    if not isinstance(text, str):
        raise ValueError("Input must be a string")

    sanitized = text.strip()

    if max_length and len(sanitized) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    if strip_html:
        sanitized = re.sub(r'<[^>]*>', '', sanitized)

    # Leftover angle brackets mean malformed or encoded markup
    if '<' in sanitized or '>' in sanitized:
        raise ValueError("Input contains invalid HTML-like patterns")

    for pattern in _DANGEROUS_PATTERNS:
        if pattern.search(sanitized):
            raise ValueError("Input contains invalid content")

    return re.sub(r'\s+', ' ', sanitized)


def sanitize_poll_question(question: str) -> str:
    """Sanitize and validate a poll question (10 to 200 characters)."""
    sanitized = sanitize_text(question, max_length=MAX_QUESTION_LENGTH)

    if len(sanitized) < MIN_QUESTION_LENGTH:
        raise ValueError(f"Question must be at least {MIN_QUESTION_LENGTH} characters long")

    return sanitized


def sanitize_poll_option(option: str) -> str:
    """Sanitize and validate one answer option (1 to 100 characters)."""
    sanitized = sanitize_text(option, max_length=MAX_OPTION_LENGTH)

    if not sanitized:
        raise ValueError("Option cannot be empty")

    return sanitized


def sanitize_poll_options(options: List[str]) -> List[str]:
    """
    Sanitize the option list of a new poll.

    Blank entries are dropped first (a form with an unused trailing field is
    fine); what remains must be 2 to 5 distinct options.
    """
    filled = [option for option in options if isinstance(option, str) and option.strip()]

    if len(filled) < MIN_POLL_OPTIONS:
        raise ValueError(f"At least {MIN_POLL_OPTIONS} options are required")

    if len(filled) > MAX_POLL_OPTIONS:
        raise ValueError(f"Maximum {MAX_POLL_OPTIONS} options allowed")

    sanitized = [sanitize_poll_option(option) for option in filled]

    if len({option.lower() for option in sanitized}) != len(sanitized):
        raise ValueError("Options must be unique")

    return sanitized


def sanitize_location_label(label: Optional[str]) -> str:
    """
    Normalize a best-effort location label.

    Location is informational only, so bad input degrades to "Unknown"
    instead of failing the request.
    """
    if not label or not isinstance(label, str):
        return UNKNOWN_LOCATION

    try:
        sanitized = sanitize_text(label, max_length=MAX_LOCATION_LENGTH)
    except ValueError:
        return UNKNOWN_LOCATION

    return sanitized or UNKNOWN_LOCATION


def sanitize_username(username: str) -> str:
    """Usernames: letters, digits, dot, dash and underscore."""
    if not isinstance(username, str):
        raise ValueError("Username must be a string")

    sanitized = username.strip()

    if not sanitized:
        raise ValueError("Username cannot be empty")

    if len(sanitized) > MAX_USERNAME_LENGTH:
        raise ValueError(f"Username exceeds maximum length of {MAX_USERNAME_LENGTH} characters")

    if not re.match(r'^[A-Za-z0-9._-]+$', sanitized):
        raise ValueError("Username can only contain letters, numbers, dots, dashes and underscores")

    return sanitized


def validate_device_id(device_id: Optional[str]) -> Optional[str]:
    """Device ids are opaque client tokens; only the shape is checked."""
    if device_id is None:
        return None

    device_id = device_id.strip()
    if not device_id:
        return None

    if len(device_id) > MAX_DEVICE_ID_LENGTH:
        raise ValueError(f"Device id exceeds maximum length of {MAX_DEVICE_ID_LENGTH} characters")

    if not re.match(r'^[A-Za-z0-9_-]+$', device_id):
        raise ValueError("Device id format is invalid")

    return device_id
