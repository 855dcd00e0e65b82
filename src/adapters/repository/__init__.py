"""Repository adapters - Database implementations."""

from .postgres import (
    PostgresOtpRepository,
    PostgresRegistrationAttemptRepository,
    PostgresUserRepository,
    run_migrations,
)

__all__ = [
    "PostgresOtpRepository",
    "PostgresRegistrationAttemptRepository",
    "PostgresUserRepository",
    "run_migrations",
]
