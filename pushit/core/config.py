"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Optional, Union
import os

from pushit.core.constants import ACCESS_TOKEN_EXPIRE_MINUTES as DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Database - Support both full URL and individual components
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: Optional[str] = None
    POSTGRES_DB: Optional[str] = None

    # Security
    # User identities arrive as JWTs signed by the identity provider with SECRET_KEY
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ADMIN_PASSWORD: str = "adminpass"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES

    # CORS - Can be a list or comma-separated string
    CORS_ORIGINS: Union[list, str] = ["*"]

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    # Application
    APP_TITLE: str = "Push It!"
    APP_DESCRIPTION: str = "Hold the button, hold to vote"
    APP_VERSION: str = "1.0.0"

    # Environment
    ENVIRONMENT: str = "development"  # development, staging, production

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Hold sessions (seconds)
    HEARTBEAT_INTERVAL: float = 3.0  # Client heartbeat period while holding
    LIVENESS_TIMEOUT: float = 10.0  # Silence after which a hold no longer counts
    HOLD_SWEEP_INTERVAL: float = 5.0  # Background reaper period
    HOLD_RETENTION_MINUTES: int = 60  # Ended holds are purged after this long
    HOLD_REAPER_ENABLED: bool = True  # Run the sweep as a background task

    # Hold-to-vote
    VOTE_HOLD_DURATION: float = 3.0  # Seconds an option must be held to commit
    VOTE_HOLD_TICK_INTERVAL: float = 0.1  # Countdown/progress refresh period

    # Polls and pushes
    POLL_DURATION_HOURS: int = 24
    MAX_DAILY_PUSHES: int = 3

    # Server-Sent Events (SSE) Configuration
    # Streams are driven by change events; this is the reconciliation period
    # used as a safety net against missed events
    SSE_RECONCILE_INTERVAL: float = 5.0

    # Live counts and tallies are cached this long between writes (0 disables)
    LIVE_COUNT_CACHE_TTL: float = 1.0

    # Best-effort geolocation used by the client layer
    GEOLOCATION_URL: str = "https://ipapi.co/json/"
    GEOLOCATION_TIMEOUT: float = 3.0

    # Database Connection Pool Configuration
    DB_POOL_SIZE: int = 15
    DB_MAX_OVERFLOW: int = 25

    @model_validator(mode='after')
    def check_liveness_window(self):
        """The liveness window must tolerate a missed heartbeat or two."""
        if self.LIVENESS_TIMEOUT < 2 * self.HEARTBEAT_INTERVAL:
            raise ValueError("LIVENESS_TIMEOUT must be at least twice HEARTBEAT_INTERVAL")
        return self

    def get_database_url(self) -> str:
        """
        Get database URL from either DATABASE_URL or individual components.
        Priority: DATABASE_URL > individual components > default (dev only)
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if all([self.POSTGRES_USER, self.POSTGRES_PASSWORD,
                self.POSTGRES_HOST, self.POSTGRES_DB]):
            port = self.POSTGRES_PORT or "5432"
            return (
                f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{port}/{self.POSTGRES_DB}"
            )

        # Development fallback only
        if self.ENVIRONMENT == "development":
            return "sqlite:///./pushit.db"

        raise ValueError(
            "Database configuration missing. Provide either DATABASE_URL or "
            "all of: POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB"
        )

    def validate_production_config(self) -> None:
        """Validate that production-critical settings are properly configured."""
        if self.ENVIRONMENT == "production":
            issues = []
            warnings = []

            if self.SECRET_KEY == "your-secret-key-change-in-production":
                issues.append("SECRET_KEY must be changed from default value")

            if self.ADMIN_PASSWORD == "adminpass":
                issues.append("ADMIN_PASSWORD must be changed from default value")

            if not self.ADMIN_PASSWORD.startswith("$argon2"):
                warnings.append(
                    "ADMIN_PASSWORD is not hashed. For better security, use:\n"
                    "    python hash_password.py 'your-password'"
                )

            if self.CORS_ORIGINS == ["*"]:
                issues.append("CORS_ORIGINS should be restricted to specific domains")

            if self.get_database_url().startswith("sqlite"):
                warnings.append("SQLite is not suitable for multi-process production use")

            if warnings:
                print("⚠️  Production configuration warnings:")
                for warning in warnings:
                    print(f"  - {warning}")

            if issues:
                raise ValueError(
                    "Production configuration errors:\n" +
                    "\n".join(f"  - {issue}" for issue in issues)
                )


settings = Settings()

# Validate production configuration on startup
if os.getenv("ENVIRONMENT") == "production":
    settings.validate_production_config()
