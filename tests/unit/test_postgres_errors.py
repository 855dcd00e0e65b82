"""
Unit tests for store error translation in the Postgres adapters.

No database is needed: the pool is a mock that fails on connect.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import psycopg
import pytest

from src.adapters.repository.postgres import (
    PostgresOtpRepository,
    PostgresRegistrationAttemptRepository,
    PostgresUserRepository,
)
from src.domain.exceptions import ServiceUnavailable
from src.domain.ports import ContactMethod, ContactType, OtpPurpose

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def failing_pool() -> MagicMock:
    pool = MagicMock()
    pool.connection.side_effect = psycopg.OperationalError("connection refused")
    return pool


class TestErrorTranslation:
    """psycopg errors surface as ServiceUnavailable."""

    def test_attempt_create(self, failing_pool: MagicMock) -> None:
        with pytest.raises(ServiceUnavailable):
            PostgresRegistrationAttemptRepository(failing_pool).create(
                "a@example.com", ContactMethod.EMAIL, NOW
            )

    def test_otp_find_active(self, failing_pool: MagicMock) -> None:
        with pytest.raises(ServiceUnavailable):
            PostgresOtpRepository(failing_pool).find_active("a@example.com", OtpPurpose.LOGIN, NOW)

    def test_user_create_skeleton(self, failing_pool: MagicMock) -> None:
        with pytest.raises(ServiceUnavailable):
            PostgresUserRepository(failing_pool).create_skeleton(
                ContactType.EMAIL, "a@example.com", NOW
            )

    def test_original_error_is_chained(self, failing_pool: MagicMock) -> None:
        with pytest.raises(ServiceUnavailable) as exc_info:
            PostgresUserRepository(failing_pool).find_by_contact(ContactType.PHONE, "15551234567")
        assert isinstance(exc_info.value.__cause__, psycopg.OperationalError)


class TestMalformedIds:
    """Ids that are not UUIDs never reach the database."""

    def test_mark_completed_malformed_id(self) -> None:
        pool = MagicMock()
        assert PostgresRegistrationAttemptRepository(pool).mark_completed("42", "a@example.com", NOW) is False
        pool.connection.assert_not_called()

    def test_consume_malformed_id(self) -> None:
        pool = MagicMock()
        assert PostgresOtpRepository(pool).consume("not-a-uuid") is False
        pool.connection.assert_not_called()

    def test_get_malformed_id(self) -> None:
        pool = MagicMock()
        assert PostgresUserRepository(pool).get("user-1") is None
        pool.connection.assert_not_called()
