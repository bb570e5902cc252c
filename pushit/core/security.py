"""Security and authentication utilities."""
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import argon2
import jwt
from fastapi import HTTPException, Request

from pushit.core import config

# Argon2 hasher for the admin password
ph = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,
    parallelism=1,
    hash_len=32,
    salt_len=16
)


@dataclass(frozen=True)
class Identity:
    """The actor behind a request, as asserted by the identity provider."""

    user_id: str
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.email:
            return self.email.split("@")[0]
        return self.user_id[:8]


def generate_device_id() -> str:
    """Random device identifier for clients that do not bring their own."""
    return secrets.token_hex(16)


def get_password_hash(password: str) -> str:
    """Hash a password using Argon2."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its Argon2 hash."""
    try:
        ph.verify(password_hash, password)
        return True
    except argon2.exceptions.VerifyMismatchError:
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=config.settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.settings.SECRET_KEY, algorithm=config.settings.ALGORITHM)


def create_user_token(user_id: str, email: Optional[str] = None,
                      expires_delta: Optional[timedelta] = None) -> str:
    """Issue a user identity token (what the identity provider hands out)."""
    data = {"sub": user_id}
    if email:
        data["email"] = email
    return create_access_token(data, expires_delta)


def _extract_bearer(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    return request.cookies.get("access_token")


def decode_identity(token: str) -> Identity:
    """Validate a user token and return the identity it carries."""
    try:
        payload = jwt.decode(token, config.settings.SECRET_KEY, algorithms=[config.settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return Identity(user_id=str(user_id), email=payload.get("email"))


def get_optional_identity(request: Request) -> Optional[Identity]:
    """Identity of the caller, or None for anonymous requests.

    A token that is present but invalid is still rejected.
    """
    token = _extract_bearer(request)
    if not token:
        return None
    return decode_identity(token)


def get_current_identity(request: Request) -> Identity:
    """Identity of the caller; 401 when anonymous."""
    identity = get_optional_identity(request)
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return identity


def verify_admin_token(request: Request) -> dict:
    """Verify admin JWT from cookie and return payload."""
    token = request.cookies.get("admin_token")

    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = jwt.decode(token, config.settings.SECRET_KEY, algorithms=[config.settings.ALGORITHM])
        if not payload.get("is_admin"):
            raise HTTPException(status_code=403, detail="Not authorized")
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def verify_admin_password(password: str) -> bool:
    """Verify the admin password.

    ADMIN_PASSWORD may be an Argon2 hash (recommended) or plaintext (dev).
    Generate a hash with: python hash_password.py 'your-password'
    """
    stored_password = config.settings.ADMIN_PASSWORD

    if stored_password.startswith("$argon2"):
        return verify_password(password, stored_password)
    return secrets.compare_digest(password, stored_password)
