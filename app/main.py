"""
DocProof - Document Fingerprint Registry
FastAPI application factory.

Run with:
    uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import Settings, get_settings
from app.core.database import close_db, init_db
from app.core.errors import setup_exception_handlers
from app.core.logging_config import setup_logging_from_settings
from app.core.logging_middleware import RequestLoggingMiddleware
from app.core.shutdown import register_shutdown_handler, run_shutdown_handlers
from app.routers import documents, health
from app.services.ledger_simulator import get_confirmation_scheduler

logger = logging.getLogger(__name__)


async def _stop_confirmations() -> None:
    await get_confirmation_scheduler().shutdown()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: logging, tables, recovery sweep. Shutdown: handlers in reverse."""
    settings: Settings = app.state.settings
    setup_logging_from_settings(settings)

    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    await init_db()
    register_shutdown_handler(close_db)
    register_shutdown_handler(_stop_confirmations)

    if settings.recover_pending_on_startup:
        recovered = await get_confirmation_scheduler().recover_pending()
        logger.info("Startup recovery sweep rescheduled %d documents", len(recovered))

    yield

    logger.info("Shutting down %s", settings.app_name)
    await run_shutdown_handlers()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Register document fingerprints and verify files against the registry.",
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    setup_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(documents.router)
    app.include_router(documents.verifications_router)

    return app


app = create_app()
