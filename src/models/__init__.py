"""SQLAlchemy models."""

from src.models.comment import Comment
from src.models.contact_message import ContactMessage
from src.models.post import Post, PostImage
from src.models.session import UserSession
from src.models.subscriber import Subscriber
from src.models.user import User

__all__ = [
    "User",
    "UserSession",
    "Post",
    "PostImage",
    "Comment",
    "ContactMessage",
    "Subscriber",
]
