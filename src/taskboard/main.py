"""Entry point for the taskboard FastAPI application."""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import api_router, health_router
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .core.middleware import CorrelationIdMiddleware
from .db.session import dispose_engine, init_db
from .deps import SettingsDependency
from .errors import register_exception_handlers
from .schemas.system import RootResponse


def _normalise_prefix(raw_prefix: str) -> str:
    prefix = raw_prefix.strip()
    if prefix and not prefix.startswith("/"):
        prefix = f"/{prefix}"
    prefix = prefix.rstrip("/")
    return "" if prefix == "/" else prefix


def create_app(settings: Settings | None = None) -> FastAPI:
    """Instantiate and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    router_prefix = _normalise_prefix(settings.api_prefix)
    openapi_url = f"{router_prefix}/openapi.json"

    application = FastAPI(
        title=settings.project_name,
        version=settings.version,
        summary="Tasks and users kept consistent across independent document stores.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url=openapi_url,
    )

    application.state.settings = settings

    application.add_middleware(CorrelationIdMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    application.include_router(api_router, prefix=router_prefix)
    application.include_router(health_router)

    register_exception_handlers(application)

    @application.get("/", response_model=RootResponse, summary="Service metadata")
    async def read_root(current: SettingsDependency) -> RootResponse:
        """Expose minimal service metadata at the root endpoint."""
        return RootResponse(
            name=current.project_name,
            environment=current.environment,
            version=current.version,
            api_prefix=router_prefix,
        )

    @application.on_event("startup")
    async def _create_tables() -> None:
        await init_db()

    @application.on_event("shutdown")
    async def _dispose_engine() -> None:
        await dispose_engine()

    return application


app = create_app()


def run() -> None:
    """Console entry point for ``taskboard``."""
    settings: Settings = get_settings()
    uvicorn.run(
        "taskboard.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.reload,
        log_config=None,
    )
