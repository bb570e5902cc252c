"""Unit tests for settings validation."""
import pytest
from pydantic import ValidationError

from pushit.core.config import Settings


@pytest.mark.unit
class TestSettings:

    def test_liveness_must_cover_two_heartbeats(self):
        with pytest.raises(ValidationError, match="LIVENESS_TIMEOUT"):
            Settings(HEARTBEAT_INTERVAL=3.0, LIVENESS_TIMEOUT=5.0)

    def test_cors_origins_from_string(self):
        settings = Settings(CORS_ORIGINS="https://a.example, https://b.example")
        assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]

    def test_database_url_from_components(self):
        settings = Settings(
            DATABASE_URL=None,
            POSTGRES_USER="u",
            POSTGRES_PASSWORD="p",
            POSTGRES_HOST="db",
            POSTGRES_DB="pushit",
        )
        assert settings.get_database_url() == "postgresql://u:p@db:5432/pushit"

    def test_missing_database_outside_development(self):
        settings = Settings(DATABASE_URL=None, ENVIRONMENT="staging")
        with pytest.raises(ValueError, match="Database configuration missing"):
            settings.get_database_url()

    def test_production_rejects_defaults(self):
        settings = Settings(ENVIRONMENT="production", DATABASE_URL="postgresql://x/y")
        with pytest.raises(ValueError, match="SECRET_KEY"):
            settings.validate_production_config()
