"""Comment API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import (
    RateLimit,
    check_admin,
    get_moderation_service,
    get_optional_user,
    get_post_service,
    require_admin,
)
from src.models.comment import Comment
from src.models.enums import CommentStatus
from src.models.user import User
from src.schemas.comment import (
    BulkResult,
    CommentAdmin,
    CommentAdminList,
    CommentCreate,
    CommentIds,
    CommentList,
    CommentModerate,
    CommentPublic,
)
from src.schemas.common import MessageResponse, Pagination
from src.services.moderation import SUBMISSION_MESSAGE, EmptyCommentError, ModerationService
from src.services.posts import PostService

router = APIRouter(prefix="/api/comments", tags=["comments"])


def get_comment_or_404(service: ModerationService, comment_id: int) -> Comment:
    comment = service.get_comment(comment_id)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


@router.get("", response_model=None, dependencies=[Depends(RateLimit("read"))])
async def list_comments(
    service: Annotated[ModerationService, Depends(get_moderation_service)],
    user: Annotated[User | None, Depends(get_optional_user)],
    post_id: int | None = None,
    include_unapproved: bool = False,
    comment_status: Annotated[CommentStatus | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> CommentList | CommentAdminList:
    """List approved comments, or the full moderation queue for the admin."""
    if include_unapproved:
        check_admin(user)

    comments, total = service.list_comments(
        post_id=post_id,
        include_unapproved=include_unapproved,
        status=comment_status,
        page=page,
        limit=limit,
    )
    pagination = Pagination.build(page, limit, total)

    if include_unapproved:
        return CommentAdminList(
            comments=[CommentAdmin.model_validate(c) for c in comments],
            pagination=pagination,
        )
    return CommentList(
        comments=[CommentPublic.model_validate(c) for c in comments],
        pagination=pagination,
    )


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("comment"))],
)
async def create_comment(
    comment_data: CommentCreate,
    service: Annotated[ModerationService, Depends(get_moderation_service)],
    posts: Annotated[PostService, Depends(get_post_service)],
):
    """Submit a comment. Every accepted submission gets the same answer."""
    post = posts.get_by_id(comment_data.post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if not post.published:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot comment on unpublished posts",
        )

    try:
        comment = service.submit_comment(post, comment_data)
    except EmptyCommentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return MessageResponse(message=SUBMISSION_MESSAGE, id=comment.id)


@router.post(
    "/bulk-approve",
    response_model=BulkResult,
    dependencies=[Depends(RateLimit("write"))],
)
async def bulk_approve(
    payload: CommentIds,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[ModerationService, Depends(get_moderation_service)],
):
    """Approve several comments at once."""
    count = service.bulk_approve(payload.ids)
    return BulkResult(count=count, message=f"{count} comment(s) approved")


@router.post(
    "/bulk-delete",
    response_model=BulkResult,
    dependencies=[Depends(RateLimit("write"))],
)
async def bulk_delete(
    payload: CommentIds,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[ModerationService, Depends(get_moderation_service)],
):
    """Delete several comments at once."""
    count = service.bulk_delete(payload.ids)
    return BulkResult(count=count, message=f"{count} comment(s) deleted")


@router.get(
    "/{comment_id}",
    response_model=CommentAdmin,
    dependencies=[Depends(RateLimit("read"))],
)
async def get_comment(
    comment_id: int,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[ModerationService, Depends(get_moderation_service)],
):
    """Get a comment with its moderation fields."""
    return get_comment_or_404(service, comment_id)


@router.patch(
    "/{comment_id}",
    response_model=CommentAdmin,
    dependencies=[Depends(RateLimit("write"))],
)
async def moderate_comment(
    comment_id: int,
    command: CommentModerate,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[ModerationService, Depends(get_moderation_service)],
):
    """Approve, reject or re-classify a comment."""
    comment = get_comment_or_404(service, comment_id)
    return service.moderate_comment(comment, command)


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(RateLimit("write"))],
)
async def delete_comment(
    comment_id: int,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[ModerationService, Depends(get_moderation_service)],
):
    """Delete a comment."""
    comment = get_comment_or_404(service, comment_id)
    service.delete_comment(comment)
    return None
