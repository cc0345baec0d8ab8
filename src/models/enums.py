"""Enums for model fields."""

from enum import Enum


class CommentStatus(str, Enum):
    """Moderation states of a visitor comment."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SPAM = "SPAM"


class UserRole(str, Enum):
    """Roles recorded on user accounts."""

    ADMIN = "admin"
