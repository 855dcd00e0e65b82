"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.clock import SystemClock
from src.adapters.repository.postgres import run_migrations
from src.adapters.smtp.client import SmtpMailer
from src.adapters.smtp.console import ConsoleMailer, ConsoleSmsSender
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.notifications import NotificationDispatcher
from src.domain.ports import Mailer

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Progressive Registration API v1 - Verify a contact by OTP, "
        "then set a password and complete the profile",
    },
]


def build_mailer(settings: Settings) -> Mailer:
    if settings.mail_backend == "smtp":
        return SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            from_email=settings.mail_from_email,
            from_name=settings.mail_from_name,
        )
    return ConsoleMailer()


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    return NotificationDispatcher(
        mailer=build_mailer(settings),
        sms_sender=ConsoleSmsSender(),
        executor=ThreadPoolExecutor(
            max_workers=settings.notification_workers, thread_name_prefix="notify"
        ),
        otp_ttl_minutes=max(1, settings.otp_ttl_seconds // 60),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Starts the notification executor
    - Drains notifications and closes the pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=True,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    # Store collaborators in app state for dependency injection
    app.state.pool = pool
    app.state.clock = SystemClock()
    app.state.dispatcher = build_dispatcher(settings)

    logger.info("Application startup complete (mail backend: %s)", settings.mail_backend)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    app.state.dispatcher.shutdown(wait=True)
    logger.info("Notification executor drained")
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="medivault-registration",
    description="Progressive Registration API - OTP-verified account creation for the MediVault health wallet",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
