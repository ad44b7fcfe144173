"""Tests for global exception handlers.

Validates that domain errors map to consistent HTTP statuses and that
server-side failures never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from kitgate.core.errors import (
    AppError,
    AuthenticationAppError,
    CodeRejectedAppError,
    DataIntegrityAppError,
    NotFoundAppError,
    StoreAppError,
    TokenAppError,
    ValidationAppError,
)
from kitgate.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


@pytest.mark.parametrize(
    "error_type, status_code",
    [
        (ValidationAppError, 400),
        (CodeRejectedAppError, 401),
        (TokenAppError, 401),
        (AuthenticationAppError, 403),
        (NotFoundAppError, 404),
        (StoreAppError, 500),
        (DataIntegrityAppError, 500),
    ],
)
def test_error_type_maps_to_status(app_with_handlers, client, error_type, status_code) -> None:
    @app_with_handlers.get("/boom")
    async def boom():
        raise error_type(code="test_code", message="Test message")

    response = client.get("/boom")

    assert response.status_code == status_code
    data = response.json()
    assert data["error"]["code"] == "test_code"
    assert data["error"]["message"] == "Test message"
    assert "request_id" in data["error"]


def test_client_error_includes_details(app_with_handlers, client) -> None:
    @app_with_handlers.get("/details")
    async def details():
        raise NotFoundAppError(
            code="customer_type_not_found",
            message="Customer type 'platino' not found",
            details={"customer_type": "platino"},
        )

    data = client.get("/details").json()

    assert data["error"]["details"] == {"customer_type": "platino"}


def test_server_error_hides_details(app_with_handlers, client) -> None:
    @app_with_handlers.get("/integrity")
    async def integrity():
        raise DataIntegrityAppError(
            code="duplicate_code_match",
            message="More than one active access code matches the submitted code",
            details={"match_count": 2},
        )

    data = client.get("/integrity").json()

    assert "details" not in data["error"]


def test_unmapped_app_error_defaults_to_400(app_with_handlers, client) -> None:
    @app_with_handlers.get("/plain")
    async def plain():
        raise AppError(code="plain", message="Plain error")

    assert client.get("/plain").status_code == 400


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_general_exception_handler_hides_message(self) -> None:
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("connection to db.internal:5432 refused")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "db.internal" not in data["error"]["message"]
        assert "RuntimeError" not in bytes(response.body).decode()

    def test_handlers_registered(self, app_with_handlers: FastAPI) -> None:
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers
