"""
FastAPI application factory for the admin surface.

``create_app()`` wires middleware, routers, error handlers, and
lifespan events into a single ``FastAPI`` instance.  The document store
and stage runner live on ``app.state`` so tests can swap in an
in-memory store and a gateway with harmless commands.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from insider import __version__
from insider.api.middleware.auth import BasicAuthMiddleware
from insider.api.middleware.errors import (
    insider_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from insider.core.errors import InsiderError
from insider.core.logging import get_logger
from insider.core.settings import InsiderSettings, get_settings
from insider.core.storage import DocumentStore, JsonFileStore
from insider.gateway.gateway import StageRunner, StreamingGateway

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — startup / shutdown hooks."""
    log = get_logger("insider.api")
    settings: InsiderSettings = app.state.settings
    log.info("admin_api_starting", version=app.version, data_dir=str(settings.data_dir))
    yield
    gateway = app.state.gateway
    if isinstance(gateway, StreamingGateway):
        await gateway.shutdown()
    log.info("admin_api_shutting_down")


def create_app(
    settings: InsiderSettings | None = None,
    *,
    store: DocumentStore | None = None,
    gateway: StageRunner | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : InsiderSettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    store : DocumentStore | None
        Defaults to a :class:`JsonFileStore` over ``settings.data_dir``.
    gateway : StageRunner | None
        Defaults to a :class:`StreamingGateway` running this package's CLI.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="MCP Insider Admin",
        version=__version__,
        lifespan=lifespan,
        docs_url=f"{API_PREFIX}/docs",
        redoc_url=f"{API_PREFIX}/redoc",
        openapi_url=f"{API_PREFIX}/openapi.json",
    )

    app.state.settings = settings
    app.state.store = store or JsonFileStore(settings.data_dir, config_path=settings.collector_config_path)
    app.state.gateway = gateway or StreamingGateway(kill_timeout=settings.kill_timeout_seconds)

    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(
        BasicAuthMiddleware,
        username=settings.admin_user,
        password=settings.admin_pass,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(InsiderError, insider_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from insider.api.routers import catalog, config, health, stages
    from insider.api.routers import settings as settings_router

    app.include_router(health.router)
    app.include_router(catalog.router, prefix=API_PREFIX, tags=["catalog"])
    app.include_router(settings_router.router, prefix=API_PREFIX, tags=["settings"])
    app.include_router(config.router, prefix=API_PREFIX, tags=["config"])
    # Registered last: ``/{stage}`` would shadow the fixed paths above.
    app.include_router(stages.router, prefix=API_PREFIX, tags=["stages"])

    return app
