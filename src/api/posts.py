"""Post API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import (
    RateLimit,
    check_admin,
    get_image_storage,
    get_optional_user,
    get_post_service,
    require_admin,
    user_is_admin,
)
from src.models.post import Post
from src.models.user import User
from src.schemas.common import Pagination
from src.schemas.post import PostCreate, PostList, PostPage, PostResponse, PostSummary, PostUpdate
from src.services.images import CloudinaryImageStorage, ImageStorageError
from src.services.posts import PostService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])


def get_post_or_404(service: PostService, slug: str) -> Post:
    post = service.get_by_slug(slug)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


@router.get("", response_model=PostList, dependencies=[Depends(RateLimit("read"))])
async def list_posts(
    service: Annotated[PostService, Depends(get_post_service)],
    user: Annotated[User | None, Depends(get_optional_user)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
    q: Annotated[str | None, Query(max_length=100)] = None,
    include_unpublished: bool = False,
):
    """List posts, newest first. Drafts are only listed for the admin."""
    if not include_unpublished:
        return service.public_listing(page, limit, q)

    check_admin(user)
    posts, total = service.list_posts(page=page, limit=limit, query=q, include_unpublished=True)
    return PostList(
        posts=[PostSummary.model_validate(post) for post in posts],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("write"))],
)
async def create_post(
    post_data: PostCreate,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[PostService, Depends(get_post_service)],
):
    """Create a new post."""
    return service.create_post(post_data)


@router.get("/{slug}", response_model=PostPage, dependencies=[Depends(RateLimit("read"))])
async def get_post(
    slug: str,
    service: Annotated[PostService, Depends(get_post_service)],
    user: Annotated[User | None, Depends(get_optional_user)],
):
    """Get a published post with its approved comments.

    The admin can also open drafts; those are rendered fresh, never cached.
    """
    page = service.public_page(slug)
    if page is not None:
        return page

    post = service.get_by_slug(slug)
    if post is None or not user_is_admin(user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return service.render_page(post)


@router.patch("/{slug}", response_model=PostResponse, dependencies=[Depends(RateLimit("write"))])
async def update_post(
    slug: str,
    post_data: PostUpdate,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[PostService, Depends(get_post_service)],
):
    """Update a post."""
    post = get_post_or_404(service, slug)
    return service.update_post(post, post_data)


@router.post(
    "/{slug}/toggle-published",
    response_model=PostResponse,
    dependencies=[Depends(RateLimit("write"))],
)
async def toggle_published(
    slug: str,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[PostService, Depends(get_post_service)],
):
    """Publish a draft or unpublish a live post."""
    post = get_post_or_404(service, slug)
    return service.toggle_published(post)


@router.delete(
    "/{slug}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(RateLimit("write"))],
)
async def delete_post(
    slug: str,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[PostService, Depends(get_post_service)],
    storage: Annotated[CloudinaryImageStorage, Depends(get_image_storage)],
):
    """Delete a post, its comments and its image references.

    Stored images are removed afterwards on a best-effort basis.
    """
    post = get_post_or_404(service, slug)
    public_ids = service.delete_post(post)

    if not storage.configured:
        return None
    for public_id in public_ids:
        try:
            await storage.delete(public_id)
        except ImageStorageError as e:
            logger.warning(f"Could not delete stored image {public_id}: {e}")
    return None
