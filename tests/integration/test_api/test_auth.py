"""Integration tests for admin authentication."""
import pytest

from pushit.core import config


@pytest.mark.integration
class TestAdminAuth:

    def test_login_sets_cookie(self, client, monkeypatch):
        monkeypatch.setattr(config.settings, "ADMIN_PASSWORD", "correct-horse")

        response = client.post("/api/v1/auth/admin/login", json={"password": "correct-horse"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert "admin_token" in response.cookies
        assert client.get("/api/v1/admin/holds").status_code == 200

    def test_wrong_password(self, client, monkeypatch):
        monkeypatch.setattr(config.settings, "ADMIN_PASSWORD", "correct-horse")

        response = client.post("/api/v1/auth/admin/login", json={"password": "battery-staple"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid password"

    def test_logout(self, admin_client):
        response = admin_client.post("/api/v1/auth/admin/logout")
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"
