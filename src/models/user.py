"""User model."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import UserRole
from src.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """Administrative account. Emails are stored lower-cased."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.ADMIN.value)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
