"""Contact form API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from src.api.dependencies import RateLimit, require_admin
from src.database import get_db
from src.models.contact_message import ContactMessage
from src.models.user import User
from src.schemas.common import MessageResponse, Pagination
from src.schemas.contact import ContactCreate, ContactList, ContactResponse, ContactUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])


def get_message_or_404(db: Session, message_id: int) -> ContactMessage:
    message = db.query(ContactMessage).filter(ContactMessage.id == message_id).first()
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("contact"))],
)
async def submit_message(
    message_data: ContactCreate,
    db: Annotated[Session, Depends(get_db)],
):
    """Store a message from the public contact form."""
    message = ContactMessage(
        name=message_data.name,
        email=message_data.email.lower(),
        message=message_data.message,
    )
    db.add(message)
    db.commit()
    db.refresh(message)

    logger.info(f"Contact message {message.id} received")
    return MessageResponse(
        message="Thank you for your message. We'll get back to you soon.",
        id=message.id,
    )


@router.get("", response_model=ContactList, dependencies=[Depends(RateLimit("read"))])
async def list_messages(
    _admin: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=50)] = 20,
    unread_only: bool = False,
):
    """List contact messages, newest first."""
    query = db.query(ContactMessage)
    if unread_only:
        query = query.filter(ContactMessage.read.is_(False))

    total = query.count()
    messages = (
        query.order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    unread_count = db.query(ContactMessage).filter(ContactMessage.read.is_(False)).count()

    return ContactList(
        messages=[ContactResponse.model_validate(m) for m in messages],
        unread_count=unread_count,
        pagination=Pagination.build(page, limit, total),
    )


@router.patch(
    "/{message_id}",
    response_model=ContactResponse,
    dependencies=[Depends(RateLimit("write"))],
)
async def update_message(
    message_id: int,
    update: ContactUpdate,
    _admin: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    """Mark a message read or unread."""
    message = get_message_or_404(db, message_id)
    message.read = update.read
    db.commit()
    db.refresh(message)
    return message


@router.delete(
    "/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(RateLimit("write"))],
)
async def delete_message(
    message_id: int,
    _admin: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    """Delete a message."""
    message = get_message_or_404(db, message_id)
    db.delete(message)
    db.commit()
    return None
