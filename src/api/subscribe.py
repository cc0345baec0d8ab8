"""Newsletter subscription endpoint."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.api.dependencies import RateLimit
from src.database import get_db
from src.models.subscriber import Subscriber
from src.schemas.subscriber import SubscribeRequest, SubscribeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscribe", tags=["subscribe"])

# Identical for new and existing addresses
SUBSCRIBE_MESSAGE = "Thanks for subscribing!"


@router.post(
    "",
    response_model=SubscribeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("contact"))],
)
async def subscribe(
    request_data: SubscribeRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
):
    """Subscribe an email address. Subscribing twice is not an error."""
    email = request_data.email.lower()

    existing = db.query(Subscriber).filter(Subscriber.email == email).first()
    if existing:
        response.status_code = status.HTTP_200_OK
        return SubscribeResponse(message=SUBSCRIBE_MESSAGE)

    db.add(Subscriber(email=email))
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent subscribe for the same address
        db.rollback()
        response.status_code = status.HTTP_200_OK
        return SubscribeResponse(message=SUBSCRIBE_MESSAGE)

    logger.info("New newsletter subscriber")
    return SubscribeResponse(message=SUBSCRIBE_MESSAGE)
