"""Comment submission and moderation workflow."""

import logging

from sqlalchemy.orm import Session

from src.models.comment import Comment
from src.models.enums import CommentStatus
from src.models.post import Post
from src.schemas.comment import CommentCreate, CommentModerate
from src.services.page_cache import PageCache
from src.services.spam_filter import check_spam, sanitize_comment

logger = logging.getLogger(__name__)

# Same text whatever the classifier decided, so spammers learn nothing
SUBMISSION_MESSAGE = "Thank you for your comment. It will appear after review."


class EmptyCommentError(ValueError):
    """Nothing readable is left once markup is stripped."""


def resolve_moderation(
    current: CommentStatus, command: CommentModerate
) -> tuple[CommentStatus, bool]:
    """Work out the (status, approved) pair a moderation command leads to.

    An explicit status wins and fixes the flag: only APPROVED is approved.
    A bare ``approved=True`` means APPROVED; a bare ``approved=False``
    rejects a previously approved comment and otherwise keeps its status.
    """
    if command.status is not None:
        return command.status, command.status == CommentStatus.APPROVED

    if command.approved:
        return CommentStatus.APPROVED, True

    if current == CommentStatus.APPROVED:
        return CommentStatus.REJECTED, False
    return current, False


class ModerationService:
    """Public comment intake and admin moderation."""

    def __init__(self, db: Session, cache: PageCache):
        self.db = db
        self.cache = cache

    def submit_comment(self, post: Post, data: CommentCreate) -> Comment:
        """Classify, sanitise and store a visitor comment.

        The post must already be known to exist and be published. The
        comment is always stored unapproved; SPAM only changes its status.
        """
        result = check_spam(name=data.name, email=data.email, content=data.content)
        content = sanitize_comment(data.content)
        if not content:
            raise EmptyCommentError("Comment content is required")

        comment = Comment(
            post_id=post.id,
            name=data.name,
            email=data.email.lower() if data.email else None,
            content=content,
            status=result.status.value,
            approved=False,
        )
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)

        if result.flagged:
            logger.info(
                f"Comment {comment.id} on post {post.id} flagged as spam "
                f"(score={result.score}, reasons={result.reasons})"
            )
        return comment

    def get_comment(self, comment_id: int) -> Comment | None:
        return self.db.query(Comment).filter(Comment.id == comment_id).first()

    def list_comments(
        self,
        post_id: int | None = None,
        include_unapproved: bool = False,
        status: CommentStatus | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Comment], int]:
        """Comments for the blog (approved, published posts only) or the admin queue."""
        query = self.db.query(Comment)
        if post_id is not None:
            query = query.filter(Comment.post_id == post_id)

        if include_unapproved:
            if status is not None:
                query = query.filter(Comment.status == status.value)
            order = (Comment.created_at.desc(), Comment.id.desc())
        else:
            query = query.join(Post, Comment.post_id == Post.id).filter(
                Comment.approved.is_(True), Post.published.is_(True)
            )
            order = (Comment.created_at.asc(), Comment.id.asc())

        total = query.count()
        comments = query.order_by(*order).offset((page - 1) * limit).limit(limit).all()
        return comments, total

    def moderate_comment(self, comment: Comment, command: CommentModerate) -> Comment:
        """Apply an admin decision and refresh the post's public page."""
        status, approved = resolve_moderation(CommentStatus(comment.status), command)
        comment.status = status.value
        comment.approved = approved
        self.db.commit()
        self.db.refresh(comment)

        self._invalidate_posts([comment.post_id])
        logger.info(f"Comment {comment.id} moderated to {status.value}")
        return comment

    def bulk_approve(self, ids: list[int]) -> int:
        """Approve many comments with a single UPDATE."""
        post_ids = self._post_ids_for(ids)
        count = (
            self.db.query(Comment)
            .filter(Comment.id.in_(ids))
            .update(
                {Comment.approved: True, Comment.status: CommentStatus.APPROVED.value},
                synchronize_session=False,
            )
        )
        self.db.commit()
        self._invalidate_posts(post_ids)
        logger.info(f"Bulk approved {count} comment(s)")
        return count

    def delete_comment(self, comment: Comment) -> None:
        post_id = comment.post_id
        self.db.delete(comment)
        self.db.commit()
        self._invalidate_posts([post_id])

    def bulk_delete(self, ids: list[int]) -> int:
        post_ids = self._post_ids_for(ids)
        count = (
            self.db.query(Comment)
            .filter(Comment.id.in_(ids))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        self._invalidate_posts(post_ids)
        return count

    def _post_ids_for(self, comment_ids: list[int]) -> list[int]:
        rows = (
            self.db.query(Comment.post_id).filter(Comment.id.in_(comment_ids)).distinct().all()
        )
        return [post_id for (post_id,) in rows]

    def _invalidate_posts(self, post_ids: list[int]) -> None:
        if not post_ids:
            return
        slugs = self.db.query(Post.slug).filter(Post.id.in_(post_ids)).all()
        for (slug,) in slugs:
            self.cache.invalidate_post(slug)
