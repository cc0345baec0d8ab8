"""Post schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.schemas.comment import CommentPublic
from src.schemas.common import Pagination
from src.services.markdown import is_allowed_image_url, validate_markdown


def _check_image_url(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if not is_allowed_image_url(value):
        raise ValueError("Image must be hosted on an allowed domain")
    return value


class PostCreate(BaseModel):
    """Create a new post."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str
    published: bool = False
    excerpt: str | None = Field(None, max_length=500)
    thumbnail: str | None = Field(None, max_length=1000)
    seo_title: str | None = Field(None, max_length=200)
    seo_desc: str | None = Field(None, max_length=500)
    seo_image: str | None = Field(None, max_length=1000)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title must be a non-empty string")
        return value.strip()

    @field_validator("content")
    @classmethod
    def content_is_valid(cls, value: str) -> str:
        issues = validate_markdown(value)
        if issues:
            raise ValueError(f"Invalid content: {', '.join(issues)}")
        return value

    @field_validator("thumbnail", "seo_image")
    @classmethod
    def image_host_allowed(cls, value: str | None) -> str | None:
        return _check_image_url(value)


class PostUpdate(BaseModel):
    """Update a post. Omitted fields are left alone; the slug never changes."""

    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = None
    published: bool | None = None
    excerpt: str | None = Field(None, max_length=500)
    thumbnail: str | None = Field(None, max_length=1000)
    seo_title: str | None = Field(None, max_length=200)
    seo_desc: str | None = Field(None, max_length=500)
    seo_image: str | None = Field(None, max_length=1000)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("Title cannot be empty")
        return value.strip() if value is not None else None

    @field_validator("content")
    @classmethod
    def content_is_valid(cls, value: str | None) -> str | None:
        if value is not None:
            issues = validate_markdown(value)
            if issues:
                raise ValueError(f"Invalid content: {', '.join(issues)}")
        return value

    @field_validator("thumbnail", "seo_image")
    @classmethod
    def image_host_allowed(cls, value: str | None) -> str | None:
        return _check_image_url(value)


class PostImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    public_id: str | None
    alt_text: str | None


class PostSummary(BaseModel):
    """Post as listed on the blog index."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    excerpt: str | None
    published: bool
    thumbnail: str | None
    created_at: datetime
    updated_at: datetime


class PostResponse(PostSummary):
    """Full post."""

    content: str
    seo_title: str | None
    seo_desc: str | None
    seo_image: str | None
    images: list[PostImageResponse] = []


class PostPage(PostResponse):
    """Public post page: the post with its visible comments."""

    comments: list[CommentPublic] = []


class PostList(BaseModel):
    posts: list[PostSummary]
    pagination: Pagination
