"""Comment model."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import CommentStatus
from src.models.mixins import TimestampMixin


class Comment(Base, TimestampMixin):
    """Visitor comment on a post.

    ``approved`` mirrors ``status == APPROVED``; both are only changed
    through the moderation service.
    """

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=CommentStatus.PENDING.value, index=True)
    approved = Column(Boolean, nullable=False, default=False, index=True)

    post = relationship("Post", back_populates="comments")
