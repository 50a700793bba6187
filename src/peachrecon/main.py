# File: src/peachrecon/main.py
"""FastAPI application factory."""

import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from peachrecon.core.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup and shutdown events."""
    start_time = datetime.now()
    logger.info("app.startup", message="PeachHaus reconciliation starting up", timestamp=start_time.isoformat())

    from peachrecon.api.health import set_app_start_time

    set_app_start_time(start_time)

    yield

    from peachrecon.core.db import engine

    await engine.dispose()
    logger.info("app.shutdown", message="PeachHaus reconciliation shutting down gracefully")


def _setup_middleware(app: FastAPI) -> None:
    """Configure middleware (last added = first executed)."""
    from peachrecon.middleware.logging import RequestIDMiddleware

    app.add_middleware(RequestIDMiddleware)


def _register_routers(app: FastAPI) -> None:
    """Register all API routers."""
    from peachrecon.api.health import router as health_router
    from peachrecon.api.reconciliation import router as reconciliation_router

    app.include_router(health_router)
    app.include_router(reconciliation_router)


def create_app() -> FastAPI:
    """Application factory for the reconciliation service."""
    app = FastAPI(
        title="PeachHaus Reconciliation API",
        description="Monthly owner reconciliation and billing",
        version="0.1.0",
        lifespan=lifespan,
    )

    from peachrecon.core.sentry import init_sentry

    init_sentry()

    from peachrecon.core.exception_handlers import register_exception_handlers

    register_exception_handlers(app)
    _setup_middleware(app)
    _register_routers(app)

    logger.info("app.configured", environment=os.getenv("ENVIRONMENT", "development"))

    return app


def run() -> None:
    """Development server entrypoint."""
    uvicorn.run(
        "peachrecon.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
