"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserLogin(BaseModel):
    """User login request."""

    email: EmailStr = Field(..., max_length=255)
    # No minimum here: a short wrong password must fail like any other
    password: str = Field(..., min_length=1, max_length=128)


class AdminSetup(BaseModel):
    """One-time admin account creation."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()


class UserResponse(BaseModel):
    """User information response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: str


class SessionResponse(BaseModel):
    """Returned after login; the token itself travels in the cookie."""

    user: UserResponse
    expires_at: datetime
    is_admin: bool


class SetupStatus(BaseModel):
    setup_available: bool
