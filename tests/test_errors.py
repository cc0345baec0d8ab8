"""Tests for the central exception translation."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, NoResultFound, OperationalError, ProgrammingError

from src.errors import DatabaseErrorCode, classify_database_error, register_exception_handlers
from src.services.images import ImageStorageError


def integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, Exception(message))


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (OperationalError("SELECT 1", {}, Exception("could not connect")), "connection_error"),
        (integrity_error("UNIQUE constraint failed: subscribers.email"), "unique_constraint"),
        (integrity_error("FOREIGN KEY constraint failed"), "foreign_key_constraint"),
        (NoResultFound("No row was found"), "not_found"),
        (ProgrammingError("SELECT", {}, Exception("syntax error")), "unknown"),
    ],
)
def test_classify_database_error(exc, expected):
    assert classify_database_error(exc) == DatabaseErrorCode(expected)


@pytest.fixture
def error_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/db-down")
    async def db_down():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    @app.get("/duplicate")
    async def duplicate():
        raise integrity_error('duplicate key value violates unique constraint "ix_posts_slug"')

    @app.get("/images")
    async def images():
        raise ImageStorageError("Cloudinary upload timed out")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    return TestClient(app, raise_server_exceptions=False)


def test_database_errors_map_to_status_codes(error_client):
    response = error_client.get("/db-down")
    assert response.status_code == 503
    assert "connection refused" not in response.json()["detail"]

    response = error_client.get("/duplicate")
    assert response.status_code == 409
    assert response.json() == {"detail": "This record already exists."}


def test_image_errors_keep_status_code(error_client):
    response = error_client.get("/images")
    assert response.status_code == 503
    assert response.json()["detail"] == "Cloudinary upload timed out"


def test_unexpected_errors_are_500(error_client):
    response = error_client.get("/boom")
    assert response.status_code == 500
    assert "detail" in response.json()
