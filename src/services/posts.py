"""Post persistence and the cached public blog payloads."""

import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from src.models.comment import Comment
from src.models.post import Post, PostImage
from src.schemas.comment import CommentPublic
from src.schemas.common import Pagination
from src.schemas.post import (
    PostCreate,
    PostList,
    PostPage,
    PostResponse,
    PostSummary,
    PostUpdate,
)
from src.services.images import public_id_from_url
from src.services.markdown import extract_images, generate_excerpt
from src.services.page_cache import PageCache, listing_cache_key, post_cache_key
from src.services.slugify import generate_unique_slug

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


class PostService:
    """CRUD for posts and their image references."""

    def __init__(self, db: Session, cache: PageCache):
        self.db = db
        self.cache = cache

    def get_by_slug(self, slug: str) -> Post | None:
        return self.db.query(Post).filter(Post.slug == slug).first()

    def get_by_id(self, post_id: int) -> Post | None:
        return self.db.query(Post).filter(Post.id == post_id).first()

    def list_posts(
        self,
        page: int = 1,
        limit: int = 10,
        query: str | None = None,
        include_unpublished: bool = False,
    ) -> tuple[list[Post], int]:
        """Newest first, optionally searching title and excerpt."""
        q = self.db.query(Post)
        if not include_unpublished:
            q = q.filter(Post.published.is_(True))

        query = (query or "").strip()
        if len(query) >= MIN_SEARCH_LENGTH:
            pattern = f"%{query}%"
            q = q.filter(or_(Post.title.ilike(pattern), Post.excerpt.ilike(pattern)))

        total = q.count()
        posts = (
            q.order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return posts, total

    def public_listing(self, page: int, limit: int, query: str | None) -> dict[str, Any]:
        """Published posts for the blog index, served from cache when fresh."""
        key = listing_cache_key(page, limit, (query or "").strip() or None)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        posts, total = self.list_posts(page=page, limit=limit, query=query)
        payload = PostList(
            posts=[PostSummary.model_validate(post) for post in posts],
            pagination=Pagination.build(page, limit, total),
        ).model_dump(mode="json")
        self.cache.set(key, payload)
        return payload

    def public_page(self, slug: str) -> dict[str, Any] | None:
        """A published post with its approved comments, or None."""
        key = post_cache_key(slug)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        post = self.get_by_slug(slug)
        if post is None or not post.published:
            return None

        payload = self.render_page(post)
        self.cache.set(key, payload)
        return payload

    def render_page(self, post: Post) -> dict[str, Any]:
        comments = (
            self.db.query(Comment)
            .filter(Comment.post_id == post.id, Comment.approved.is_(True))
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )
        # Drafts never show comments, even approved ones
        visible = [CommentPublic.model_validate(c) for c in comments] if post.published else []
        page = PostPage(**PostResponse.model_validate(post).model_dump(), comments=visible)
        return page.model_dump(mode="json")

    def _build_images(self, content: str) -> list[PostImage]:
        return [
            PostImage(
                url=image.url,
                public_id=public_id_from_url(image.url),
                alt_text=image.alt_text,
            )
            for image in extract_images(content)
        ]

    def create_post(self, data: PostCreate) -> Post:
        """Create a post and its image references in one transaction."""
        slug = generate_unique_slug(self.db, data.title)
        post = Post(
            title=data.title,
            slug=slug,
            content=data.content,
            excerpt=data.excerpt or generate_excerpt(data.content),
            published=data.published,
            thumbnail=data.thumbnail,
            seo_title=data.seo_title or None,
            seo_desc=data.seo_desc or None,
            seo_image=data.seo_image,
        )
        post.images = self._build_images(data.content)

        try:
            self.db.add(post)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(post)
        self.cache.invalidate_listings()
        logger.info(f"Created post {post.id} ({post.slug})")
        return post

    def update_post(self, post: Post, data: PostUpdate) -> Post:
        """Apply a partial update.

        When the content changes, the image references are deleted and
        re-inserted inside the same transaction as the post update.
        """
        changes = data.model_dump(exclude_unset=True)

        try:
            if "title" in changes and data.title is not None:
                post.title = data.title
            if "content" in changes and data.content is not None:
                post.content = data.content
                if "excerpt" not in changes:
                    post.excerpt = generate_excerpt(data.content)
                self.db.query(PostImage).filter(PostImage.post_id == post.id).delete(
                    synchronize_session=False
                )
                for image in self._build_images(data.content):
                    image.post_id = post.id
                    self.db.add(image)
            if "published" in changes and data.published is not None:
                post.published = data.published
            if "excerpt" in changes:
                post.excerpt = data.excerpt or None
            for field in ("thumbnail", "seo_title", "seo_desc", "seo_image"):
                if field in changes:
                    setattr(post, field, changes[field] or None)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(post)
        self.db.expire(post, ["images"])
        self.cache.invalidate_post(post.slug)
        return post

    def toggle_published(self, post: Post) -> Post:
        post.published = not post.published
        self.db.commit()
        self.db.refresh(post)
        self.cache.invalidate_post(post.slug)
        return post

    def delete_post(self, post: Post) -> list[str]:
        """Delete a post with its comments and image references.

        Children are removed explicitly before the post, inside one
        transaction, so the cascade holds on databases without enforced
        foreign keys. Returns the image public ids that were referenced.
        """
        public_ids = [image.public_id for image in post.images if image.public_id]
        slug = post.slug

        try:
            self.db.query(Comment).filter(Comment.post_id == post.id).delete(
                synchronize_session=False
            )
            self.db.query(PostImage).filter(PostImage.post_id == post.id).delete(
                synchronize_session=False
            )
            self.db.expire(post, ["images", "comments"])
            self.db.delete(post)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.cache.invalidate_post(slug)
        logger.info(f"Deleted post {slug} ({len(public_ids)} stored images)")
        return public_ids
