from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI, status
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from taskboard.core.logging import RequestContextFilter
from taskboard.errors import (
    ApplicationError,
    ConflictError,
    ImmutableError,
    InvalidReferenceError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from taskboard.main import create_app

pytestmark = pytest.mark.asyncio


@pytest.fixture()
def app(settings) -> FastAPI:
    return create_app(settings)


def _client(app: FastAPI, *, raise_app_exceptions: bool = True) -> AsyncClient:
    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    return AsyncClient(transport=transport, base_url="http://test")


async def test_application_error_response_schema(app: FastAPI) -> None:
    @app.get("/error/application")
    async def trigger_application_error() -> None:  # pragma: no cover - defined in test
        raise ApplicationError(
            "Example failure",
            code="example_error",
            status_code=status.HTTP_418_IM_A_TEAPOT,
            details={"foo": "bar"},
        )

    async with _client(app) as client:
        response = await client.get("/error/application")

    assert response.status_code == status.HTTP_418_IM_A_TEAPOT
    request_id = response.headers["X-Request-ID"]
    assert response.json() == {
        "code": "example_error",
        "message": "Example failure",
        "details": {"foo": "bar", "request_id": request_id},
    }


@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (ValidationError(), status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error"),
        (NotFoundError(), status.HTTP_404_NOT_FOUND, "not_found"),
        (InvalidReferenceError(), status.HTTP_400_BAD_REQUEST, "invalid_reference"),
        (ImmutableError(), status.HTTP_409_CONFLICT, "immutable"),
        (ConflictError(), status.HTTP_409_CONFLICT, "conflict"),
        (StorageError(), status.HTTP_503_SERVICE_UNAVAILABLE, "storage_error"),
    ],
)
async def test_engine_errors_map_to_status_codes(
    app: FastAPI,
    error: ApplicationError,
    status_code: int,
    code: str,
) -> None:
    @app.get("/error/engine")
    async def trigger_engine_error() -> None:  # pragma: no cover - defined in test
        raise error

    async with _client(app) as client:
        response = await client.get("/error/engine")

    assert response.status_code == status_code
    payload = response.json()
    assert payload["code"] == code
    assert payload["message"] == error.message
    assert payload["details"] == {"request_id": response.headers["X-Request-ID"]}


async def test_validation_error_response_schema(app: FastAPI) -> None:
    class ExamplePayload(BaseModel):
        name: str

    @app.post("/error/validation")
    async def create_item(_: ExamplePayload) -> None:  # pragma: no cover - defined in test
        return None

    async with _client(app) as client:
        response = await client.post("/error/validation", json={})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    payload = response.json()
    assert payload["code"] == "validation_error"
    assert payload["message"] == "Request validation failed."
    assert "errors" in payload["details"]
    assert payload["details"]["request_id"] == response.headers["X-Request-ID"]


async def test_unknown_route_returns_not_found_envelope(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.get("/error/not-found")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    payload = response.json()
    assert payload["code"] == "not_found"
    assert payload["message"]
    assert payload["details"]["request_id"] == response.headers["X-Request-ID"]


async def test_integrity_error_response_schema(app: FastAPI) -> None:
    @app.get("/error/database")
    async def trigger_integrity_error() -> None:  # pragma: no cover - defined in test
        raise IntegrityError("statement", {}, Exception("constraint"))

    async with _client(app) as client:
        response = await client.get("/error/database")

    assert response.status_code == status.HTTP_409_CONFLICT
    payload = response.json()
    assert payload["code"] == "conflict"
    assert payload["message"] == "Database integrity violation."
    assert payload["details"]["request_id"] == response.headers["X-Request-ID"]


async def test_unhandled_error_hides_internal_details(app: FastAPI) -> None:
    @app.get("/error/unhandled")
    async def trigger_unhandled_error() -> None:  # pragma: no cover - defined in test
        raise RuntimeError("Sensitive detail")

    async with _client(app, raise_app_exceptions=False) as client:
        response = await client.get("/error/unhandled")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    payload = response.json()
    assert payload["code"] == "server_error"
    assert payload["message"] == "Internal server error."
    assert "Sensitive" not in response.text


async def test_incoming_request_id_is_echoed(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.get("/healthz", headers={"X-Request-ID": "req-from-caller"})

    assert response.headers["X-Request-ID"] == "req-from-caller"


class _InMemoryHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.INFO)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


async def test_request_id_attached_to_logs(app: FastAPI) -> None:
    logger = logging.getLogger("tests.error_handling")
    handler = _InMemoryHandler()
    handler.addFilter(RequestContextFilter())
    logger.addHandler(handler)
    original_level = logger.level
    logger.setLevel(logging.INFO)

    @app.get("/log")
    async def emit_log() -> dict[str, str]:  # pragma: no cover - defined in test
        logger.info("Log entry")
        return {"status": "ok"}

    try:
        async with _client(app) as client:
            response = await client.get("/log")
    finally:
        logger.removeHandler(handler)
        logger.setLevel(original_level)
        handler.close()

    request_id = response.headers["X-Request-ID"]
    matching = [record for record in handler.records if record.getMessage() == "Log entry"]
    assert matching
    assert getattr(matching[0], "request_id", None) == request_id
