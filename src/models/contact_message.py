"""Contact form message model."""

from sqlalchemy import Boolean, Column, Integer, String, Text

from src.database import Base
from src.models.mixins import TimestampMixin


class ContactMessage(Base, TimestampMixin):
    """Inquiry sent through the public contact form."""

    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False, index=True)
