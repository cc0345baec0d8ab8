"""FastAPI dependencies for authentication, rate limiting and services."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.config import get_settings
from src.database import get_db
from src.models.session import UserSession
from src.models.user import User
from src.services.auth import get_session
from src.services.authz import is_admin
from src.services.images import CloudinaryImageStorage
from src.services.moderation import ModerationService
from src.services.page_cache import PageCache
from src.services.posts import PostService
from src.services.rate_limit import (
    RateLimiter,
    RateLimitResult,
    RateLimitUnavailableError,
    get_client_identifier,
    resolve_policy,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# Bearer tokens are accepted as a fallback for non-browser clients
security = HTTPBearer(auto_error=False)


def get_rate_limiter(request: Request) -> RateLimiter:
    """Limiter built once at startup and shared by every request."""
    return request.app.state.rate_limiter


def get_page_cache(request: Request) -> PageCache:
    return request.app.state.page_cache


class RateLimit:
    """Dependency enforcing one of the named rate-limit presets."""

    def __init__(self, preset: str) -> None:
        self.preset = preset
        self.policy = resolve_policy(preset, settings)

    def __call__(
        self,
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    ) -> RateLimitResult:
        identifier = get_client_identifier(request.headers)
        try:
            result = limiter.check(f"{self.preset}:{identifier}", self.policy)
        except RateLimitUnavailableError as e:
            logger.error(f"Rate limiter unavailable for {self.preset}: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service temporarily unavailable",
            ) from e

        if not result.allowed:
            logger.info(f"Rate limit '{self.preset}' exceeded by {identifier}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later.",
                headers={
                    "Retry-After": str(result.retry_after_seconds),
                    "X-RateLimit-Limit": str(self.policy.max_requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(result.reset_at_ms),
                },
            )
        return result


def get_session_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Session token from the cookie, else from an Authorization header."""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def get_optional_session(
    token: Annotated[str | None, Depends(get_session_token)],
    db: Annotated[Session, Depends(get_db)],
) -> UserSession | None:
    return get_session(db, token)


def get_current_session(
    session: Annotated[UserSession | None, Depends(get_optional_session)],
) -> UserSession:
    """Get the live session or fail with 401."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return session


def get_current_user(
    session: Annotated[UserSession, Depends(get_current_session)],
) -> User:
    """Get the current authenticated user."""
    return session.user


def get_optional_user(
    session: Annotated[UserSession | None, Depends(get_optional_session)],
) -> User | None:
    return session.user if session is not None else None


def check_admin(user: User | None) -> User:
    """Allow only the configured operator: 401 without a session, 403 for anyone else."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    if not is_admin(user.email, settings.admin_email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized: Admin access required",
        )
    return user


def user_is_admin(user: User | None) -> bool:
    return user is not None and is_admin(user.email, settings.admin_email)


def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get the current user, who must be the admin."""
    return check_admin(current_user)


def get_post_service(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[PageCache, Depends(get_page_cache)],
) -> PostService:
    """Get post service with dependencies."""
    return PostService(db, cache)


def get_moderation_service(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[PageCache, Depends(get_page_cache)],
) -> ModerationService:
    """Get moderation service with dependencies."""
    return ModerationService(db, cache)


def get_image_storage() -> CloudinaryImageStorage:
    """Get image storage client."""
    return CloudinaryImageStorage()
