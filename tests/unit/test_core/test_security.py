"""Unit tests for security utilities."""
from datetime import timedelta
from unittest.mock import Mock

import pytest
from fastapi import HTTPException

from pushit.core import config
from pushit.core.security import (
    create_access_token,
    create_user_token,
    decode_identity,
    get_current_identity,
    get_optional_identity,
    get_password_hash,
    verify_admin_password,
    verify_password,
)


def _request(headers=None, cookies=None):
    request = Mock()
    request.headers = headers or {}
    request.cookies = cookies or {}
    return request


@pytest.mark.unit
class TestPasswords:

    def test_hash_and_verify(self):
        hashed = get_password_hash("s3cret-pass")
        assert hashed.startswith("$argon2")
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong", hashed)

    def test_admin_password_plaintext(self, monkeypatch):
        monkeypatch.setattr(config.settings, "ADMIN_PASSWORD", "letmein")
        assert verify_admin_password("letmein")
        assert not verify_admin_password("nope")

    def test_admin_password_hashed(self, monkeypatch):
        monkeypatch.setattr(config.settings, "ADMIN_PASSWORD", get_password_hash("letmein"))
        assert verify_admin_password("letmein")


@pytest.mark.unit
class TestIdentity:

    def test_decode_user_token(self):
        identity = decode_identity(create_user_token("user-1", "jo@example.com"))
        assert identity.user_id == "user-1"
        assert identity.email == "jo@example.com"
        assert identity.display_name == "jo"

    def test_token_without_subject_rejected(self):
        with pytest.raises(HTTPException) as exc:
            decode_identity(create_access_token({"is_admin": True}))
        assert exc.value.status_code == 401

    def test_expired_token(self):
        token = create_user_token("user-1", expires_delta=timedelta(seconds=-1))
        with pytest.raises(HTTPException) as exc:
            decode_identity(token)
        assert exc.value.detail == "Token expired"

    def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc:
            decode_identity("not-a-jwt")
        assert exc.value.detail == "Invalid token"

    def test_optional_identity_anonymous(self):
        assert get_optional_identity(_request()) is None

    def test_bearer_header(self):
        token = create_user_token("user-2")
        identity = get_optional_identity(_request(headers={"Authorization": f"Bearer {token}"}))
        assert identity.user_id == "user-2"

    def test_cookie_fallback(self):
        token = create_user_token("user-3")
        assert get_optional_identity(_request(cookies={"access_token": token})).user_id == "user-3"

    def test_current_identity_requires_token(self):
        with pytest.raises(HTTPException) as exc:
            get_current_identity(_request())
        assert exc.value.status_code == 401
