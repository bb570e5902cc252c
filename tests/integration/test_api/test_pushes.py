"""Integration tests for poll pushes."""
import pytest

from tests.integration.test_api.test_polls import create_poll


@pytest.mark.integration
class TestPushes:

    def test_push_and_limits(self, client, alice, bob):
        poll_id = create_poll(client, alice)

        response = client.post(f"/api/v1/polls/{poll_id}/push", headers=bob)

        assert response.status_code == 200
        assert response.json()["push_count"] == 1
        assert response.json()["limits"]["remaining"] == 2
        assert client.get("/api/v1/me/push-limits", headers=bob).json()["pushes_used"] == 1
        assert client.get(f"/api/v1/polls/{poll_id}").json()["push_count"] == 1

    def test_push_twice_is_409(self, client, alice, bob):
        poll_id = create_poll(client, alice)
        client.post(f"/api/v1/polls/{poll_id}/push", headers=bob)

        response = client.post(f"/api/v1/polls/{poll_id}/push", headers=bob)
        assert response.status_code == 409
        assert response.json()["detail"] == "You already pushed this poll"

    def test_fourth_push_of_the_day_is_429(self, client, alice, bob):
        polls = [create_poll(client, alice, question=f"Question number {i} today") for i in range(4)]
        for poll_id in polls[:3]:
            assert client.post(f"/api/v1/polls/{poll_id}/push", headers=bob).status_code == 200

        response = client.post(f"/api/v1/polls/{polls[3]}/push", headers=bob)
        assert response.status_code == 429
        assert response.json()["detail"] == "Daily push limit reached"

    def test_push_requires_identity(self, client, alice):
        poll_id = create_poll(client, alice)
        assert client.post(f"/api/v1/polls/{poll_id}/push").status_code == 401
