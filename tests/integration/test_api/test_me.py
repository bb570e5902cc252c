"""Integration tests for the signed-in user's endpoints."""
import pytest

from tests.integration.test_api.test_polls import create_poll


@pytest.mark.integration
class TestProfile:

    def test_profile_created_on_first_access(self, client, alice):
        response = client.get("/api/v1/me/profile", headers=alice)

        assert response.status_code == 200
        assert response.json()["id"] == "user-alice"
        assert response.json()["email"] == "alice@example.com"
        assert response.json()["username"] is None

    def test_update_profile(self, client, alice):
        response = client.put("/api/v1/me/profile", json={"username": "ali", "country": "Peru"}, headers=alice)

        assert response.status_code == 200
        assert response.json()["username"] == "ali"
        assert response.json()["country"] == "Peru"

    def test_username_taken(self, client, alice, bob):
        client.put("/api/v1/me/profile", json={"username": "ali"}, headers=alice)

        response = client.put("/api/v1/me/profile", json={"username": "ali"}, headers=bob)
        assert response.status_code == 409
        assert response.json()["detail"] == "Username is already taken"

    def test_invalid_username(self, client, alice):
        response = client.put("/api/v1/me/profile", json={"username": "two words"}, headers=alice)
        assert response.status_code == 422

    def test_profile_username_used_for_new_polls(self, client, alice):
        client.put("/api/v1/me/profile", json={"username": "ali"}, headers=alice)
        poll_id = create_poll(client, alice)
        assert client.get(f"/api/v1/polls/{poll_id}").json()["creator_username"] == "ali"

    def test_requires_identity(self, client):
        assert client.get("/api/v1/me/profile").status_code == 401
        assert client.get("/api/v1/me/stats").status_code == 401


@pytest.mark.integration
class TestUserPollLists:

    def test_created_polls(self, client, alice, bob):
        mine = create_poll(client, alice, question="A question from alice")
        create_poll(client, bob, question="A question from bob")

        polls = client.get("/api/v1/me/created-polls", headers=alice).json()
        assert [p["id"] for p in polls] == [mine]

    def test_voted_polls(self, client, alice, bob):
        voted = create_poll(client, alice, question="A question bob votes on")
        create_poll(client, alice, question="A question bob ignores")
        option = client.get(f"/api/v1/polls/{voted}").json()["options"][1]["option_id"]
        client.post(f"/api/v1/polls/{voted}/votes", json={"option_id": option}, headers=bob)

        polls = client.get("/api/v1/me/voted-polls", headers=bob).json()
        assert [(p["id"], p["user_vote"]) for p in polls] == [(voted, option)]
        assert client.get("/api/v1/me/voted-polls", headers=alice).json() == []

    def test_lists_require_identity(self, client):
        assert client.get("/api/v1/me/created-polls").status_code == 401
        assert client.get("/api/v1/me/voted-polls").status_code == 401


@pytest.mark.integration
class TestUserStats:

    def test_stats(self, client, alice, bob):
        poll_id = create_poll(client, alice)
        option = client.get(f"/api/v1/polls/{poll_id}").json()["options"][0]["option_id"]
        client.post(f"/api/v1/polls/{poll_id}/votes", json={"option_id": option}, headers=bob)
        client.post(f"/api/v1/polls/{poll_id}/push", headers=bob)

        assert client.get("/api/v1/me/stats", headers=alice).json() == {
            "polls_created": 1,
            "votes_cast": 0,
            "votes_received": 1,
            "pushes_received": 1,
        }
        assert client.get("/api/v1/me/stats", headers=bob).json()["votes_cast"] == 1
