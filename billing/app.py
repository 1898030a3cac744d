"""FastAPI application factory: entry point for the billing API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from billing.config import get_settings
from billing.constants import CORS_ALLOWED_HEADERS
from billing.errors import BillingError
from billing.routers import admin, health, packages, payments, subscriptions, webhooks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # Auto-create tables for SQLite (dev mode); PostgreSQL uses Alembic
    from billing.db.session import async_session_factory, engine
    from billing.models import Base

    settings = get_settings()
    if settings.database_url.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    from billing.http_client import close_http_client, init_http_client
    await init_http_client()

    from billing.services.autopay_service import AutopayService
    from billing.services.gateway import get_gateway
    app.state.autopay = AutopayService(async_session_factory, get_gateway())
    if settings.autopay_enabled:
        app.state.autopay.start()

    yield

    await app.state.autopay.stop()
    await close_http_client()
    await engine.dispose()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=CORS_ALLOWED_HEADERS,
    )

    # --- Error handlers ---
    @app.exception_handler(BillingError)
    async def billing_error_handler(request: Request, exc: BillingError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    # --- Routers ---
    app.include_router(health.router)
    app.include_router(payments.functions_router)
    app.include_router(payments.router)
    app.include_router(subscriptions.router)
    app.include_router(packages.router)
    app.include_router(admin.router)
    app.include_router(webhooks.router)

    return app


app = create_app()
