"""Newsletter subscriber model."""

from sqlalchemy import Column, Integer, String

from src.database import Base
from src.models.mixins import CreatedAtMixin


class Subscriber(Base, CreatedAtMixin):
    """Email address opted into the newsletter."""

    __tablename__ = "subscribers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
