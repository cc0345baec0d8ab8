"""Comment schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from src.models.enums import CommentStatus
from src.schemas.common import Pagination


class CommentCreate(BaseModel):
    """Public comment submission."""

    post_id: int
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr | None = None
    content: str = Field(..., min_length=10, max_length=2000)

    @field_validator("email", mode="before")
    @classmethod
    def empty_email_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Comment content is required")
        return value


class CommentModerate(BaseModel):
    """Admin moderation: an approval flag, an explicit status, or both."""

    approved: bool | None = None
    status: CommentStatus | None = None

    @model_validator(mode="after")
    def require_a_change(self) -> "CommentModerate":
        if self.approved is None and self.status is None:
            raise ValueError("Provide approved or status")
        return self


class CommentIds(BaseModel):
    """Bulk action target."""

    ids: list[int] = Field(..., min_length=1, max_length=500)


class CommentPublic(BaseModel):
    """Comment as shown on the blog."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    content: str
    created_at: datetime


class CommentAdmin(CommentPublic):
    """Comment with moderation fields."""

    post_id: int
    email: str | None
    status: CommentStatus
    approved: bool
    updated_at: datetime


class CommentList(BaseModel):
    comments: list[CommentPublic]
    pagination: Pagination


class CommentAdminList(BaseModel):
    comments: list[CommentAdmin]
    pagination: Pagination


class BulkResult(BaseModel):
    count: int
    message: str
