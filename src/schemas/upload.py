"""Image upload schemas."""

from pydantic import BaseModel


class UploadResponse(BaseModel):
    url: str
    public_id: str
    width: int | None
    height: int | None
    format: str | None
    size: int | None


class DeleteImageResponse(BaseModel):
    deleted: bool
    public_id: str
    result: str
