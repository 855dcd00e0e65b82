"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.

Long-lived collaborators (connection pool, notification dispatcher, clock)
are created in the application lifespan and stored in app.state; nothing
here is a module-level singleton.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresOtpRepository,
    PostgresRegistrationAttemptRepository,
    PostgresUserRepository,
)
from src.adapters.tokens.jwt import JwtTokenService
from src.config.settings import get_settings
from src.domain.login import LoginService
from src.domain.notifications import NotificationDispatcher
from src.domain.otp import OtpService
from src.domain.ports import Clock
from src.domain.registration import RegistrationService


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_token_service(request: Request) -> JwtTokenService:
    settings = get_settings()
    return JwtTokenService(
        secret=settings.jwt_secret,
        clock=get_clock(request),
        ttl_seconds=settings.token_ttl_seconds,
        algorithm=settings.jwt_algorithm,
    )


def get_otp_service(request: Request) -> OtpService:
    settings = get_settings()
    return OtpService(
        repository=PostgresOtpRepository(get_pool(request)),
        clock=get_clock(request),
        ttl_seconds=settings.otp_ttl_seconds,
        code_length=settings.otp_length,
    )


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the repositories, token service and notification
    dispatcher for the domain service.
    """
    pool = get_pool(request)
    return RegistrationService(
        users=PostgresUserRepository(pool),
        attempts=PostgresRegistrationAttemptRepository(pool),
        otp=get_otp_service(request),
        tokens=get_token_service(request),
        notifications=get_dispatcher(request),
        clock=get_clock(request),
        bcrypt_rounds=get_settings().bcrypt_cost,
    )


def get_login_service(request: Request) -> LoginService:
    return LoginService(
        users=PostgresUserRepository(get_pool(request)),
        otp=get_otp_service(request),
        tokens=get_token_service(request),
        notifications=get_dispatcher(request),
    )


# Bearer security scheme for OpenAPI documentation.
# auto_error=False lets the domain raise Unauthorized for a missing token.
http_bearer = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str | None:
    """
    Extract the raw token from an ``Authorization: Bearer`` header.

    Returns None when the header is missing or uses another scheme.
    """
    if credentials is None:
        return None
    return credentials.credentials
