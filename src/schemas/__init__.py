"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import AdminSetup, SessionResponse, SetupStatus, UserLogin, UserResponse
from src.schemas.comment import CommentCreate, CommentIds, CommentModerate
from src.schemas.contact import ContactCreate, ContactResponse, ContactUpdate
from src.schemas.post import PostCreate, PostResponse, PostSummary, PostUpdate
from src.schemas.subscriber import SubscribeRequest

__all__ = [
    "UserLogin",
    "AdminSetup",
    "UserResponse",
    "SessionResponse",
    "SetupStatus",
    "CommentCreate",
    "CommentModerate",
    "CommentIds",
    "PostCreate",
    "PostUpdate",
    "PostResponse",
    "PostSummary",
    "ContactCreate",
    "ContactUpdate",
    "ContactResponse",
    "SubscribeRequest",
]
