"""Contact form schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.schemas.common import Pagination


class ContactCreate(BaseModel):
    """Public contact form submission."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., max_length=255)
    message: str = Field(..., min_length=10, max_length=5000)

    @field_validator("name", "message")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Field is required")
        return value.strip()


class ContactUpdate(BaseModel):
    read: bool = True


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    message: str
    read: bool
    created_at: datetime


class ContactList(BaseModel):
    messages: list[ContactResponse]
    unread_count: int
    pagination: Pagination
