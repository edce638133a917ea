"""FastAPI application entry point — wires everything together.

Usage:
    python -m lawconsult.main

Starts the lifecycle API plus the event worker and the stale-appointment sweeper.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from lawconsult import __version__
from lawconsult.api.routes import lifecycle_error_handler, router
from lawconsult.config import settings
from lawconsult.db.engine import db_lifespan
from lawconsult.events import start_event_system, stop_event_system, subscribe
from lawconsult.lifecycle.errors import LifecycleError
from lawconsult.lifecycle.sweeper import lifecycle_sweeper
from lawconsult.security.audit import audit_on_event

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting lawconsult (env=%s)", settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")

        subscribe(audit_on_event)
        await start_event_system()
        logger.info("Event system started with audit subscriber")

        if settings.lifecycle.sweep_enabled:
            lifecycle_sweeper.start()
        else:
            logger.warning("Stale-appointment sweeper disabled")

        try:
            yield
        finally:
            logger.info("Shutting down lawconsult...")
            await lifecycle_sweeper.stop()
            await stop_event_system()

    logger.info("lawconsult shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="lawconsult API",
    description="Lifecycle engine for client/lawyer consultation appointments",
    version=__version__,
    lifespan=lifespan,
)
app.add_exception_handler(LifecycleError, lifecycle_error_handler)
app.include_router(router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": __version__,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "lawconsult.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
