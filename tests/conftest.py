"""Shared test fixtures and configuration."""
import os

# Must be set before pushit is imported: the engine and the lifespan read them
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["HOLD_REAPER_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from pushit.api.deps import get_clock, get_db  # noqa: E402
from pushit.core import config  # noqa: E402
from pushit.core.cache import global_cache  # noqa: E402
from pushit.core.events import change_hub  # noqa: E402
from pushit.core.rate_limit import limiter  # noqa: E402
from pushit.core.security import create_access_token, create_user_token  # noqa: E402
from pushit.db.base import Base  # noqa: E402
from pushit.main import app  # noqa: E402
from tests.utils import FakeClock  # noqa: E402


# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(autouse=True)
def disable_rate_limiting_for_tests(request):
    """Disable rate limiting for all tests except rate limiting tests."""
    # Check if this is a rate limiting test (marked with @pytest.mark.rate_limit)
    if "rate_limit" in request.keywords:
        limiter.enabled = True
        limiter.reset()
        yield
        limiter.reset()
    else:
        limiter.enabled = False
        yield
    limiter.enabled = True


@pytest.fixture(autouse=True)
def isolate_shared_state(monkeypatch):
    """Fresh change hub and cache per test; no caching of live counts."""
    monkeypatch.setattr(config.settings, "LIVE_COUNT_CACHE_TTL", 0.0)
    change_hub.clear()
    global_cache.clear()
    yield
    change_hub.clear()
    global_cache.clear()


@pytest.fixture
def clock():
    """Deterministic time source shared by services and the API."""
    return FakeClock()


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh database for each test."""
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a new database session for a test."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session, clock):
    """Create a test client with a test database and the fake clock."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    """Authorization headers for a few distinct users."""
    def make(user_id="user-alice", email=None):
        return {"Authorization": f"Bearer {create_user_token(user_id, email)}"}
    return make


@pytest.fixture
def alice(user_headers):
    return user_headers("user-alice", "alice@example.com")


@pytest.fixture
def bob(user_headers):
    return user_headers("user-bob", "bob@example.com")


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT token."""
    return create_access_token({"is_admin": True})


@pytest.fixture
def admin_client(client, admin_token):
    """Create a test client with admin cookie already set."""
    # Set the admin token as a cookie
    client.cookies.set("admin_token", admin_token)
    return client
