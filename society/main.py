"""
FastAPI application entry point.
Configures routes, middleware, and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from society.api.auth import router as auth_router
from society.api.deps import get_dispatcher, get_supervisor
from society.api.payments import router as payments_router
from society.api.webhooks.razorpay import router as razorpay_router
from society.config import settings
from society.database import DatabaseSupervisor, close_db, init_db, supervisor
from society.errors import register_exception_handlers
from society.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle manager."""
    # Startup
    configure_logging()
    logger.info(f"Starting up {settings.app_name}...")

    # Fatal when the database never answers
    await supervisor.connect()
    if settings.is_development:
        await init_db()
    supervisor.start()

    yield

    # Shutdown
    await get_dispatcher().drain()
    await supervisor.stop()
    await close_db()
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.society_name,
    description="Resident accounts and maintenance payments",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

register_exception_handlers(app)

# CORS middleware
origins = list(settings.cors_origins)
if settings.is_development:
    origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check(db_supervisor: DatabaseSupervisor = Depends(get_supervisor)):
    """Health check endpoint."""
    return {
        "status": "healthy" if db_supervisor.healthy else "degraded",
        "app": settings.app_name,
        "env": settings.app_env,
        "database": "connected" if db_supervisor.healthy else "unavailable",
    }


app.include_router(auth_router, prefix="/api")
app.include_router(payments_router, prefix="/api")
app.include_router(
    razorpay_router,
    prefix="/api/payments/webhooks",
    tags=["webhooks"],
)
