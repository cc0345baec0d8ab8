"""Pytest configuration and fixtures."""

import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.api.dependencies import get_page_cache, get_rate_limiter
from src.database import Base, get_db
from src.main import app
from src.models import Post
from src.services.auth import create_admin_user
from src.services.page_cache import PageCache
from src.services.rate_limit import MemoryRateLimiter

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"
SESSION_COOKIE = "tuning_session"


class AuthHeaders(dict):
    """Dict subclass that also stores the session token and user id."""

    def __init__(self, *args, token: str = "", user_id: int | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.token = token
        self.user_id = user_id


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/tuning_cms", "/tuning_cms_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def rate_limiter():
    return MemoryRateLimiter()


@pytest.fixture
def page_cache():
    return PageCache(max_entries=100, ttl_seconds=600)


@pytest.fixture(scope="function")
def client(db, rate_limiter, page_cache):
    """Create a test client with database, limiter and cache overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_page_cache] = lambda: page_cache
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db):
    return create_admin_user(db, ADMIN_EMAIL, ADMIN_PASSWORD, "Site Admin")


def login(client, email: str, password: str) -> AuthHeaders:
    """Log in and return bearer headers; the client's cookie jar is left empty."""
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    token = response.cookies[SESSION_COOKIE]
    client.cookies.clear()
    return AuthHeaders(
        {"Authorization": f"Bearer {token}"},
        token=token,
        user_id=response.json()["user"]["id"],
    )


@pytest.fixture
def admin_headers(client, admin_user, rate_limiter):
    """Log in as the admin and return auth headers."""
    headers = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    # Tests start with an untouched login budget
    rate_limiter.reset()
    return headers


@pytest.fixture
def user_headers(client, db, admin_headers, rate_limiter):
    """A second account that is signed in but is not the admin."""
    create_admin_user(db, "editor@example.com", "editorpass123", "Editor")
    headers = login(client, "editor@example.com", "editorpass123")
    rate_limiter.reset()
    return headers


@pytest.fixture
def create_post(client, admin_headers):
    """Factory that creates a post through the API and returns its JSON."""

    def _create(title="Stage 1 Remap Guide", content=None, published=True, **extra):
        response = client.post(
            "/api/posts",
            headers=admin_headers,
            json={
                "title": title,
                "content": content or "# Heading\n\nA remap changes the fuel and boost tables.",
                "published": published,
                **extra,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def published_post(create_post, db):
    data = create_post()
    return db.get(Post, data["id"])
