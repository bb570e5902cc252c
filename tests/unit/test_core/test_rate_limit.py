"""Tests for rate limit key selection."""
from types import SimpleNamespace

import pytest

from pushit.core.rate_limit import get_client_ip, get_rate_limit_key
from pushit.core.security import create_user_token


def _request(headers=None, host="10.0.0.7"):
    return SimpleNamespace(headers=headers or {}, client=SimpleNamespace(host=host))


@pytest.mark.unit
class TestRateLimitKeys:

    def test_client_ip_from_connection(self):
        assert get_client_ip(_request()) == "10.0.0.7"

    def test_client_ip_prefers_first_forwarded_address(self):
        request = _request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})
        assert get_client_ip(request) == "203.0.113.5"

    def test_anonymous_callers_keyed_by_ip(self):
        assert get_rate_limit_key(_request()) == "ip:10.0.0.7"

    def test_signed_in_callers_keyed_by_user(self):
        token = create_user_token("user-alice", "alice@example.com")
        request = _request({"Authorization": f"Bearer {token}"})
        assert get_rate_limit_key(request) == "user:user-alice"

    def test_invalid_token_falls_back_to_ip(self):
        request = _request({"Authorization": "Bearer not-a-jwt"})
        assert get_rate_limit_key(request) == "ip:10.0.0.7"
