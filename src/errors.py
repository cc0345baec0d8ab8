"""Central translation of unexpected exceptions into API responses.

Route handlers raise ``HTTPException`` for every failure they anticipate;
FastAPI already renders those. Everything else ends up here:

* database errors are mapped onto the HTTP taxonomy (503 connection,
  409 unique violation, 400 foreign-key violation, 404 missing row),
* image-service failures become 502/503 with provider text hidden in
  production,
* anything else is a 500, logged with its traceback.
"""

import logging
from enum import StrEnum

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    NoResultFound,
    OperationalError,
    SQLAlchemyError,
)

from src.config import get_settings
from src.services.images import ImageStorageError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


class DatabaseErrorCode(StrEnum):
    """Known persistence failure categories."""

    CONNECTION_ERROR = "connection_error"
    UNIQUE_CONSTRAINT = "unique_constraint"
    FOREIGN_KEY_CONSTRAINT = "foreign_key_constraint"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


DATABASE_ERRORS: dict[DatabaseErrorCode, tuple[int, str]] = {
    DatabaseErrorCode.CONNECTION_ERROR: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database is temporarily unavailable. Please try again.",
    ),
    DatabaseErrorCode.UNIQUE_CONSTRAINT: (
        status.HTTP_409_CONFLICT,
        "This record already exists.",
    ),
    DatabaseErrorCode.FOREIGN_KEY_CONSTRAINT: (
        status.HTTP_400_BAD_REQUEST,
        "Referenced record does not exist.",
    ),
    DatabaseErrorCode.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Record not found."),
    DatabaseErrorCode.UNKNOWN: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "A database error occurred. Please try again.",
    ),
}


def classify_database_error(exc: SQLAlchemyError) -> DatabaseErrorCode:
    """Map a SQLAlchemy exception onto a known error category."""
    if isinstance(exc, OperationalError | InterfaceError):
        return DatabaseErrorCode.CONNECTION_ERROR
    if isinstance(exc, NoResultFound):
        return DatabaseErrorCode.NOT_FOUND
    if isinstance(exc, IntegrityError):
        # psycopg2 exposes SQLSTATE, sqlite only the message
        pgcode = getattr(exc.orig, "pgcode", None)
        message = str(exc.orig).lower()
        if pgcode == "23505" or "unique" in message:
            return DatabaseErrorCode.UNIQUE_CONSTRAINT
        if pgcode == "23503" or "foreign key" in message:
            return DatabaseErrorCode.FOREIGN_KEY_CONSTRAINT
    return DatabaseErrorCode.UNKNOWN


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    code = classify_database_error(exc)
    status_code, message = DATABASE_ERRORS[code]
    if code == DatabaseErrorCode.UNKNOWN:
        logger.exception(f"Unhandled database error on {request.method} {request.url.path}")
    else:
        logger.warning(f"Database error ({code}) on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": message})


async def image_storage_error_handler(request: Request, exc: ImageStorageError) -> JSONResponse:
    logger.error(f"Image storage failure on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message()})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    detail = GENERIC_ERROR_MESSAGE if get_settings().is_production else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": detail}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the translators on an application."""
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(ImageStorageError, image_storage_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
