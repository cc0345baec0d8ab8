"""Authentication service for password handling and login sessions."""

import hashlib
import hmac
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models.enums import UserRole
from src.models.session import UserSession
from src.models.user import User

logger = logging.getLogger(__name__)
settings = get_settings()

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds
)

BCRYPT_PREFIX = "bcrypt$"

# Accounts created before the bcrypt migration store "<salt>:<pbkdf2 hex>"
LEGACY_PBKDF2_ITERATIONS = 10000
LEGACY_PBKDF2_KEY_LENGTH = 64


@dataclass(frozen=True)
class PasswordCheck:
    valid: bool
    needs_rehash: bool = False


def get_password_hash(password: str) -> str:
    """Hash a password in the current storage format."""
    return f"{BCRYPT_PREFIX}{pwd_context.hash(password)}"


def _verify_bcrypt(password: str, stored_hash: str) -> PasswordCheck:
    return PasswordCheck(valid=pwd_context.verify(password, stored_hash[len(BCRYPT_PREFIX) :]))


def _verify_legacy_pbkdf2(password: str, stored_hash: str) -> PasswordCheck:
    salt, _, expected = stored_hash.partition(":")
    if not salt or not expected:
        return PasswordCheck(valid=False)
    computed = hashlib.pbkdf2_hmac(
        "sha512",
        password.encode(),
        salt.encode(),
        LEGACY_PBKDF2_ITERATIONS,
        dklen=LEGACY_PBKDF2_KEY_LENGTH,
    ).hex()
    valid = hmac.compare_digest(computed, expected)
    return PasswordCheck(valid=valid, needs_rehash=valid)


PASSWORD_VERIFIERS: dict[str, Callable[[str, str], PasswordCheck]] = {
    "bcrypt": _verify_bcrypt,
    "pbkdf2_sha512": _verify_legacy_pbkdf2,
}


def password_hash_format(stored_hash: str) -> str:
    """Return the format tag of a stored password hash."""
    if stored_hash.startswith(BCRYPT_PREFIX):
        return "bcrypt"
    return "pbkdf2_sha512"


def verify_password(plain_password: str, stored_hash: str) -> PasswordCheck:
    """Verify a password against a hash in any supported format."""
    verifier = PASSWORD_VERIFIERS[password_hash_format(stored_hash)]
    return verifier(plain_password, stored_hash)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.query(User).filter(User.email == normalize_email(email)).first()


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Authenticate a user by email and password.

    A successful login against a legacy hash upgrades the stored hash.
    Unknown accounts and wrong passwords are indistinguishable to callers.
    """
    user = get_user_by_email(db, email)
    if not user:
        # Unknown accounts still pay for one hash check
        pwd_context.dummy_verify()
        return None

    check = verify_password(password, user.password_hash)
    if not check.valid:
        return None

    if check.needs_rehash:
        user.password_hash = get_password_hash(password)
        db.commit()
        logger.info(f"Migrated password hash for user {user.id} to bcrypt")

    return user


def count_users(db: Session) -> int:
    return db.query(User).count()


def setup_available(db: Session) -> bool:
    """The one-time admin setup is open only while no account exists."""
    return count_users(db) == 0


def create_admin_user(db: Session, email: str, password: str, name: str) -> User:
    """Create an administrative account."""
    user = User(
        email=normalize_email(email),
        password_hash=get_password_hash(password),
        name=name.strip(),
        role=UserRole.ADMIN.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def generate_session_token() -> str:
    return secrets.token_hex(32)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def session_expired(session: UserSession, now: datetime | None = None) -> bool:
    return _as_utc(session.expires_at) <= (now or datetime.now(UTC))


def create_session(db: Session, user_id: int) -> UserSession:
    """Issue a new session for a user."""
    session = UserSession(
        token=generate_session_token(),
        user_id=user_id,
        expires_at=datetime.now(UTC) + timedelta(days=settings.session_duration_days),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def get_session(db: Session, token: str | None) -> UserSession | None:
    """Look up a live session by token.

    Expired sessions are deleted on sight and reported as absent.
    """
    if not token:
        return None

    session = db.query(UserSession).filter(UserSession.token == token).first()
    if session is None:
        return None

    if session_expired(session):
        db.delete(session)
        db.commit()
        return None

    return session


def delete_session(db: Session, token: str | None) -> None:
    """Log out by removing the session, if any."""
    if not token:
        return
    db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)
    db.commit()


def purge_expired_sessions(db: Session) -> int:
    """Delete every expired session and return how many were removed."""
    deleted = (
        db.query(UserSession)
        .filter(UserSession.expires_at <= datetime.now(UTC))
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
