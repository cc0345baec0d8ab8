"""Celery tasks for session housekeeping."""

import logging

from sqlalchemy.orm import Session

from src.celery_app import app as celery_app
from src.database import SessionLocal
from src.services import auth

logger = logging.getLogger(__name__)


@celery_app.task
def purge_expired_sessions() -> dict:
    """Delete sessions whose expiry has passed.

    Expired sessions are already refused and removed lazily on lookup; this
    task runs hourly via celery-beat to clear the ones nobody presents again.

    Returns:
        dict with the number of deleted sessions
    """
    db: Session = SessionLocal()
    try:
        deleted = auth.purge_expired_sessions(db)
        if deleted:
            logger.info(f"Purged {deleted} expired session(s)")
        return {"deleted": deleted}
    finally:
        db.close()
