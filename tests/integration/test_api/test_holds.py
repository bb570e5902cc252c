"""Integration tests for hold session endpoints."""
import pytest


def _start(client, headers=None, **body):
    return client.post("/api/v1/holds", json=body, headers=headers or {})


def _count(client):
    return client.get("/api/v1/holds/active-count").json()["active_count"]


@pytest.mark.integration
class TestHoldLifecycle:

    def test_anonymous_global_hold(self, client):
        response = _start(client, location_label="Portugal")

        assert response.status_code == 201
        data = response.json()
        assert data["target_kind"] == "global_button"
        assert data["is_active"] is True
        assert data["location_label"] == "Portugal"
        assert _count(client) == 1

    def test_heartbeat_and_end(self, client, clock, alice):
        hold_id = _start(client, alice).json()["id"]

        clock.advance(3)
        response = client.post(f"/api/v1/holds/{hold_id}/heartbeat", headers=alice)
        assert response.status_code == 200
        assert response.json()["last_heartbeat_at"] is not None

        response = client.delete(f"/api/v1/holds/{hold_id}", headers=alice)
        assert response.json() == {"ended": True}
        assert client.delete(f"/api/v1/holds/{hold_id}", headers=alice).json() == {"ended": False}
        assert _count(client) == 0

    def test_heartbeat_after_lapse_is_404(self, client, clock, alice):
        hold_id = _start(client, alice).json()["id"]
        clock.advance(10)

        response = client.post(f"/api/v1/holds/{hold_id}/heartbeat", headers=alice)

        assert response.status_code == 404
        assert response.json()["detail"] == "Hold not found"

    def test_other_users_hold(self, client, alice, bob):
        hold_id = _start(client, alice).json()["id"]

        assert client.post(f"/api/v1/holds/{hold_id}/heartbeat", headers=bob).status_code == 403
        assert client.delete(f"/api/v1/holds/{hold_id}", headers=bob).status_code == 403

    def test_restart_supersedes(self, client, alice):
        _start(client, alice)
        _start(client, alice)
        assert _count(client) == 1

    def test_option_hold_needs_identity(self, client):
        response = _start(client, target_kind="poll_option", target_id=1)
        assert response.status_code == 401

    def test_option_hold_needs_target(self, client, alice):
        response = _start(client, alice, target_kind="poll_option")
        assert response.status_code == 422

    def test_global_hold_rejects_target(self, client):
        assert _start(client, target_id=3).status_code == 422

    def test_bad_device_id(self, client):
        assert _start(client, device_id="not valid!").status_code == 422

    def test_invalid_token_rejected(self, client):
        response = _start(client, {"Authorization": "Bearer nonsense"})
        assert response.status_code == 401
