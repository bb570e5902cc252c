"""Test rate limiting functionality."""
import pytest


@pytest.mark.integration
@pytest.mark.rate_limit
class TestRateLimiting:
    """Test rate limiting on write endpoints."""

    def test_poll_create_rate_limit(self, client, alice):
        """Poll creation allows 10 per minute per client."""
        for i in range(10):
            response = client.post(
                "/api/v1/polls",
                json={"question": f"Rate limited question {i}", "options": ["a", "b"]},
                headers=alice,
            )
            assert response.status_code == 201, f"Request {i+1} should succeed under 10/min limit"

        response = client.post(
            "/api/v1/polls",
            json={"question": "One question too many", "options": ["a", "b"]},
            headers=alice,
        )
        assert response.status_code == 429, "Request 11 should be rate limited with 429 status"

    def test_hold_start_rate_limit(self, client):
        """Hold starts allow 120 per minute per client."""
        for i in range(120):
            response = client.post("/api/v1/holds", json={})
            assert response.status_code == 201, f"Request {i+1} should succeed under 120/min limit"

        assert client.post("/api/v1/holds", json={}).status_code == 429
