"""Authentication, session and admin-setup tests."""

import hashlib
from datetime import UTC, datetime, timedelta

from src.models import User, UserSession
from src.services import auth as auth_service
from src.services.auth import (
    authenticate_user,
    create_session,
    get_password_hash,
    get_session,
    password_hash_format,
    verify_password,
)

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"
SESSION_COOKIE = "tuning_session"


def legacy_hash(password: str, salt: str = "5f2b9c0e") -> str:
    digest = hashlib.pbkdf2_hmac("sha512", password.encode(), salt.encode(), 10000, dklen=64)
    return f"{salt}:{digest.hex()}"


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_database_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["database"]["connected"] is True


def test_password_hash_formats():
    current = get_password_hash("s3cret-pass")
    assert current.startswith("bcrypt$")
    assert password_hash_format(current) == "bcrypt"
    assert verify_password("s3cret-pass", current).valid
    assert not verify_password("wrong", current).valid

    legacy = legacy_hash("s3cret-pass")
    assert password_hash_format(legacy) == "pbkdf2_sha512"
    check = verify_password("s3cret-pass", legacy)
    assert check.valid and check.needs_rehash
    assert not verify_password("wrong", legacy).valid


def test_setup_creates_first_admin(client):
    assert client.get("/api/auth/setup-check").json() == {"setup_available": True}

    response = client.post(
        "/api/auth/setup",
        json={"name": "Site Admin", "email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 201
    assert response.json()["email"] == ADMIN_EMAIL
    assert response.json()["role"] == "admin"

    assert client.get("/api/auth/setup-check").json() == {"setup_available": False}


def test_setup_rejects_short_password(client):
    response = client.post(
        "/api/auth/setup",
        json={"name": "Site Admin", "email": ADMIN_EMAIL, "password": "short"},
    )
    assert response.status_code == 422


def test_setup_rejects_malformed_json_before_first_admin(client):
    response = client.post(
        "/api/auth/setup",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 422
    assert client.get("/api/auth/setup-check").json() == {"setup_available": True}


def test_setup_refused_once_a_user_exists(client, admin_user):
    """Repeated setup calls are refused whatever the body contains."""
    payloads = [
        {"name": "Other", "email": "other@example.com", "password": "password123"},
        {"name": "", "email": "not-an-email", "password": "x"},
        {},
    ]
    for _ in range(3):
        for payload in payloads:
            response = client.post("/api/auth/setup", json=payload)
            assert response.status_code == 403
            assert response.json()["detail"] == "Setup has already been completed"

    malformed = client.post(
        "/api/auth/setup",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert malformed.status_code == 403


def test_login_sets_session_cookie(client, admin_user):
    response = client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["email"] == ADMIN_EMAIL
    assert data["is_admin"] is True

    cookie = response.headers["set-cookie"]
    assert f"{SESSION_COOKIE}=" in cookie
    assert "HttpOnly" in cookie
    assert "samesite=lax" in cookie.lower()
    assert len(response.cookies[SESSION_COOKIE]) == 64

    # The cookie alone authenticates follow-up requests
    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == ADMIN_EMAIL


def test_login_email_is_case_insensitive(client, admin_user):
    response = client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL.upper(), "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200


def test_login_wrong_password(client, admin_user):
    """Test login with wrong password."""
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_login_unknown_user_looks_like_wrong_password(client, admin_user):
    response = client.post(
        "/api/auth/login", json={"email": "ghost@example.com", "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_login_rate_limited_after_five_attempts(client, admin_user):
    for _ in range(5):
        response = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong-password"}
        )
        assert response.status_code == 401

    # Correct credentials do not help once the window is exhausted
    response = client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 429
    assert "Retry-After" in response.headers


def test_me_requires_session(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401


def test_me_accepts_bearer_token(client, admin_headers):
    response = client.get("/api/auth/me", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["id"] == admin_headers.user_id


def test_logout_destroys_session(client, db, admin_headers):
    response = client.post("/api/auth/logout", headers=admin_headers)
    assert response.status_code == 200
    assert db.query(UserSession).filter(UserSession.token == admin_headers.token).count() == 0

    response = client.get("/api/auth/me", headers=admin_headers)
    assert response.status_code == 401


def test_logout_without_session_is_harmless(client):
    response = client.post("/api/auth/logout")
    assert response.status_code == 200


def test_expired_session_is_rejected_and_deleted(client, db, admin_headers):
    session = db.query(UserSession).filter(UserSession.token == admin_headers.token).one()
    session.expires_at = datetime.now(UTC) - timedelta(minutes=1)
    db.commit()

    response = client.get("/api/auth/me", headers=admin_headers)
    assert response.status_code == 401
    assert db.query(UserSession).filter(UserSession.token == admin_headers.token).count() == 0

    # A second lookup is just as absent
    assert get_session(db, admin_headers.token) is None


def test_session_tokens_are_unique(db, admin_user):
    first = create_session(db, admin_user.id)
    second = create_session(db, admin_user.id)
    assert first.token != second.token
    assert get_session(db, first.token).user_id == admin_user.id


def test_legacy_password_is_rehashed_on_login(client, db):
    user = User(
        email="legacy@example.com",
        password_hash=legacy_hash("old-password"),
        name="Legacy",
        role="admin",
    )
    db.add(user)
    db.commit()

    response = client.post(
        "/api/auth/login", json={"email": "legacy@example.com", "password": "old-password"}
    )
    assert response.status_code == 200

    db.refresh(user)
    assert user.password_hash.startswith("bcrypt$")
    assert verify_password("old-password", user.password_hash).valid
    # Works again against the upgraded hash
    assert authenticate_user(db, "legacy@example.com", "old-password") is not None


def test_failed_legacy_login_keeps_hash(db):
    stored = legacy_hash("old-password")
    user = User(email="legacy@example.com", password_hash=stored, name="Legacy", role="admin")
    db.add(user)
    db.commit()

    assert authenticate_user(db, "legacy@example.com", "not-it") is None
    db.refresh(user)
    assert user.password_hash == stored


def test_unknown_email_still_runs_a_hash_check(db, monkeypatch):
    calls = []
    monkeypatch.setattr(auth_service.pwd_context, "dummy_verify", lambda: calls.append(1))

    assert authenticate_user(db, "ghost@example.com", "whatever") is None
    assert calls == [1]


def test_admin_routes_require_session(client):
    response = client.get("/api/contact")
    assert response.status_code == 401


def test_admin_routes_reject_other_accounts(client, user_headers):
    response = client.get("/api/contact", headers=user_headers)
    assert response.status_code == 403

    response = client.get("/api/auth/me", headers=user_headers)
    assert response.status_code == 200
