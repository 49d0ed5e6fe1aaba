"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

import assetman
from assetman.config.logging import setup_logging
from assetman.config.settings import Settings, get_settings
from assetman.models.api import StatusResponse
from assetman.storage.database import create_engine_for_url, init_db
from assetman.storage.seed import seed_demo_data
from assetman.web.auth.tokens import TokenCodec
from assetman.web.errors import register_exception_handlers
from assetman.web.health import check_health
from assetman.web.middleware import (
    AuthenticationMiddleware,
    CompanySelectionMiddleware,
    RequestIDMiddleware,
)
from assetman.web.routes.admin_companies import router as admin_companies_router
from assetman.web.routes.admin_users import router as admin_users_router
from assetman.web.routes.auth import router as auth_router
from assetman.web.routes.companies import router as companies_router
from assetman.web.routes.locations import router as locations_router
from assetman.web.routes.me import router as me_router
from assetman.web.routes.users import router as users_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    engine: AsyncEngine = app.state.engine
    if settings.create_tables:
        await init_db(engine)
    if settings.seed_demo_data:
        await seed_demo_data(engine)
    yield
    await engine.dispose()


def create_app(settings: Settings | None = None, engine: AsyncEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)

    # Fails fast on a short secret
    codec = TokenCodec(
        settings.jwt_secret,
        access_validity_seconds=settings.access_token_validity_seconds,
        refresh_validity_seconds=settings.refresh_token_validity_seconds,
    )

    app = FastAPI(
        title="Assetman",
        description="Multi-tenant asset management API",
        version=assetman.__version__,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine or create_engine_for_url(settings.database_url, echo=settings.debug)
    app.state.codec = codec

    register_exception_handlers(app)

    # Middleware (last added runs first)
    app.add_middleware(CompanySelectionMiddleware)
    app.add_middleware(AuthenticationMiddleware, codec=codec)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # Public
    @app.get("/api/ping", response_model=StatusResponse)
    async def ping() -> StatusResponse:
        return StatusResponse(status="ok")

    @app.get("/api/health")
    async def health_check(request: Request) -> dict[str, object]:
        return await check_health(request.app.state.engine)

    for router in (
        auth_router,
        companies_router,
        me_router,
        users_router,
        admin_users_router,
        admin_companies_router,
        locations_router,
    ):
        app.include_router(router)

    logger.info("app_created")
    return app
