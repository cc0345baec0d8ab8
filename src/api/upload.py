"""Image upload endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from src.api.dependencies import RateLimit, get_image_storage, require_admin
from src.models.user import User
from src.schemas.upload import DeleteImageResponse, UploadResponse
from src.services.images import ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE, CloudinaryImageStorage

router = APIRouter(prefix="/api/upload", tags=["upload"])


@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("upload"))],
)
async def upload_image(
    _admin: Annotated[User, Depends(require_admin)],
    storage: Annotated[CloudinaryImageStorage, Depends(get_image_storage)],
    file: Annotated[UploadFile, File()],
    folder: Annotated[str, Form(max_length=100, pattern=r"^[\w\-/]+$")] = "blog",
):
    """Upload an image for use in post content."""
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type. Allowed: {', '.join(ALLOWED_IMAGE_TYPES)}",
        )

    data = await file.read()
    if len(data) > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {MAX_IMAGE_SIZE // (1024 * 1024)}MB",
        )
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    image = await storage.upload(
        data, filename=file.filename or "upload", content_type=file.content_type, folder=folder
    )
    return UploadResponse(
        url=image.url,
        public_id=image.public_id,
        width=image.width,
        height=image.height,
        format=image.format,
        size=image.size,
    )


@router.delete(
    "",
    response_model=DeleteImageResponse,
    dependencies=[Depends(RateLimit("write"))],
)
async def delete_image(
    _admin: Annotated[User, Depends(require_admin)],
    storage: Annotated[CloudinaryImageStorage, Depends(get_image_storage)],
    public_id: Annotated[str, Query(min_length=1, max_length=255)],
):
    """Delete a stored image by its public id."""
    result = await storage.delete(public_id)
    return DeleteImageResponse(deleted=result == "ok", public_id=public_id, result=result)
