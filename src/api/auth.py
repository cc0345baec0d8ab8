"""Authentication API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from src.api.dependencies import RateLimit, get_current_user, get_session_token
from src.config import get_settings
from src.database import get_db
from src.models.user import User
from src.schemas.auth import AdminSetup, SessionResponse, SetupStatus, UserLogin, UserResponse
from src.schemas.common import MessageResponse
from src.services.auth import (
    authenticate_user,
    create_admin_user,
    create_session,
    delete_session,
    get_user_by_email,
    setup_available,
)
from src.services.authz import is_admin

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["auth"])


def ensure_setup_available(db: Annotated[Session, Depends(get_db)]) -> None:
    """Refuse setup once any account exists, before looking at the payload."""
    if not setup_available(db):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Setup has already been completed",
        )


async def read_setup_payload(
    request: Request,
    _: Annotated[None, Depends(ensure_setup_available)],
) -> AdminSetup:
    """Parse the setup body only after the guard has passed."""
    try:
        body = await request.json()
    except ValueError as e:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body", 0), "msg": "JSON decode error", "input": {}}]
        ) from e
    try:
        return AdminSetup.model_validate(body)
    except ValidationError as e:
        raise RequestValidationError(
            [{**error, "loc": ("body", *error["loc"])} for error in e.errors(include_url=False)]
        ) from e


@router.post(
    "/login",
    response_model=SessionResponse,
    dependencies=[Depends(RateLimit("auth"))],
)
async def login(
    credentials: UserLogin,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
):
    """Login with email and password; the session token is set as a cookie."""
    user = authenticate_user(db, credentials.email, credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    session = create_session(db, user.id)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.token,
        max_age=settings.session_duration_days * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )

    return SessionResponse(
        user=UserResponse.model_validate(user),
        expires_at=session.expires_at,
        is_admin=is_admin(user.email, settings.admin_email),
    )


@router.post(
    "/logout", response_model=MessageResponse, dependencies=[Depends(RateLimit("default"))]
)
async def logout(
    response: Response,
    token: Annotated[str | None, Depends(get_session_token)],
    db: Annotated[Session, Depends(get_db)],
):
    """Logout: drop the server-side session and clear the cookie."""
    delete_session(db, token)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse, dependencies=[Depends(RateLimit("default"))])
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user


@router.get(
    "/setup-check", response_model=SetupStatus, dependencies=[Depends(RateLimit("default"))]
)
async def setup_check(db: Annotated[Session, Depends(get_db)]):
    """Whether the one-time admin setup can still run."""
    return SetupStatus(setup_available=setup_available(db))


@router.post(
    "/setup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    # Guard first so a completed setup answers 403 regardless of rate or payload
    dependencies=[Depends(ensure_setup_available), Depends(RateLimit("auth"))],
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": AdminSetup.model_json_schema()}},
        }
    },
)
async def setup(
    setup_data: Annotated[AdminSetup, Depends(read_setup_payload)],
    db: Annotated[Session, Depends(get_db)],
):
    """Create the first admin account. Permitted only while no users exist."""
    if get_user_by_email(db, setup_data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists",
        )

    user = create_admin_user(db, setup_data.email, setup_data.password, setup_data.name)
    if not is_admin(user.email, settings.admin_email):
        logger.warning("Setup account does not match ADMIN_EMAIL; it cannot use admin routes")
    return user
