"""Health and readiness endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ...deps import DatabaseSessionDependency
from ...errors import StorageError
from ...schemas.system import HealthCheckResponse

router = APIRouter(tags=["system"])


@router.get(
    "/healthz",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def read_health() -> HealthCheckResponse:
    return HealthCheckResponse(status="ok")


@router.get(
    "/readyz",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check against the document store",
)
async def read_readiness(session: DatabaseSessionDependency) -> HealthCheckResponse:
    """Report ready once the store answers a trivial query."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise StorageError("Document store is unavailable.") from exc
    return HealthCheckResponse(status="ready")
