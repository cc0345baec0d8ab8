"""Blog post models."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import CreatedAtMixin, TimestampMixin


class Post(Base, TimestampMixin):
    """Blog article written in markdown.

    The slug is assigned once at creation and never rewritten, even when
    the title changes. Deleting a post removes its comments and image
    references in the same transaction.
    """

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(String(500), nullable=True)
    published = Column(Boolean, nullable=False, default=False, index=True)
    thumbnail = Column(String(1000), nullable=True)
    seo_title = Column(String(200), nullable=True)
    seo_desc = Column(String(500), nullable=True)
    seo_image = Column(String(1000), nullable=True)

    # Relationships
    images = relationship(
        "PostImage",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PostImage.id",
    )
    comments = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PostImage(Base, CreatedAtMixin):
    """Image URL embedded in a post's markdown, kept for cleanup."""

    __tablename__ = "post_images"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url = Column(String(1000), nullable=False)
    public_id = Column(String(255), nullable=True)  # Cloudinary public id, when known
    alt_text = Column(String(255), nullable=True)

    post = relationship("Post", back_populates="images")
