"""
PostgreSQL repository adapters - Implement the domain's store protocols.

This module provides the PostgreSQL implementations of the registration
attempt, OTP and user ports using psycopg3 with raw, parameterized SQL.

Concurrency Design:
-------------------
No row is read-then-written in application code where a race matters.
The store guarantees at-most-once transitions itself:

1. **OTP consumption**: ``UPDATE ... SET is_used = TRUE WHERE id = %s AND
   is_used = FALSE``. Only one concurrent caller sees rowcount == 1.

2. **User creation**: ``INSERT ... ON CONFLICT DO NOTHING RETURNING id``
   against the UNIQUE constraints on email and phone. A second insert for
   the same contact returns no row.

3. **Attempt completion**: gated on ``status = 'pending'``.

4. **Profile completion**: gated on the password being set and the profile
   not being complete yet.

Any psycopg failure (connection refused, pool timeout, constraint surprise)
is logged and re-raised as the domain's ServiceUnavailable.
"""

import functools
import logging
import uuid
from pathlib import Path

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import ServiceUnavailable
from src.domain.ports import (
    AccountStatus,
    AttemptStatus,
    ContactMethod,
    ContactType,
    Gender,
    OtpPurpose,
    OtpRecord,
    ProfileData,
    User,
)

logger = logging.getLogger(__name__)


def _store_operation(method):
    """Translate psycopg errors into ServiceUnavailable."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except psycopg.Error as e:
            logger.error("Store operation %s failed", method.__qualname__, exc_info=True)
            raise ServiceUnavailable() from e

    return wrapper


def _parse_id(value: str) -> uuid.UUID | None:
    """Parse an opaque identifier; None for anything that is not one of ours."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class PostgresRegistrationAttemptRepository:
    """
    Implements RegistrationAttemptRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Attempts are never deleted; they form the audit trail of submissions.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @_store_operation
    def create(self, contact_value: str, method: ContactMethod, now) -> str:
        sql = """
            INSERT INTO registration_attempts (id, contact_value, contact_method, status, created_at)
            VALUES (%s, %s, %s, %s, %s)
        """
        attempt_id = uuid.uuid4()
        with self._pool.connection() as conn:
            conn.execute(
                sql,
                (attempt_id, contact_value, method.value, AttemptStatus.PENDING.value, now),
            )
        return str(attempt_id)

    @_store_operation
    def mark_completed(self, attempt_id: str, contact_value: str, now) -> bool:
        """
        Complete a pending attempt made for contact_value.

        Returns False for unknown, malformed, foreign or already completed ids
        instead of raising, so callers can treat it as bookkeeping.
        """
        parsed = _parse_id(attempt_id)
        if parsed is None:
            return False

        sql = """
            UPDATE registration_attempts
            SET status = %s, completed_at = %s
            WHERE id = %s AND contact_value = %s AND status = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    AttemptStatus.COMPLETED.value,
                    now,
                    parsed,
                    contact_value,
                    AttemptStatus.PENDING.value,
                ),
            )
            return cursor.rowcount == 1


class PostgresOtpRepository:
    """
    Implements OtpRepository protocol via psycopg3.

    Only code hashes are stored. Records are mutated exactly once after
    creation, when consumption flips is_used to TRUE.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @_store_operation
    def create(self, contact_value: str, code_hash: str, purpose: OtpPurpose, expires_at, now) -> str:
        sql = """
            INSERT INTO otp_verifications (id, contact_value, code_hash, purpose, is_used, expires_at, created_at)
            VALUES (%s, %s, %s, %s, FALSE, %s, %s)
        """
        otp_id = uuid.uuid4()
        with self._pool.connection() as conn:
            conn.execute(sql, (otp_id, contact_value, code_hash, purpose.value, expires_at, now))
        return str(otp_id)

    @_store_operation
    def find_active(self, contact_value: str, purpose: OtpPurpose, now) -> OtpRecord | None:
        # issued_seq breaks ties between codes created within the same instant
        sql = """
            SELECT id, contact_value, code_hash, purpose, is_used, expires_at, created_at
            FROM otp_verifications
            WHERE contact_value = %s
              AND purpose = %s
              AND is_used = FALSE
              AND expires_at > %s
            ORDER BY created_at DESC, issued_seq DESC
            LIMIT 1
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (contact_value, purpose.value, now))
            row = cursor.fetchone()

        if row is None:
            return None
        return OtpRecord(
            id=str(row["id"]),
            contact_value=row["contact_value"],
            code_hash=row["code_hash"],
            purpose=OtpPurpose(row["purpose"]),
            is_used=row["is_used"],
            expires_at=row["expires_at"],
            created_at=row["created_at"],
        )

    @_store_operation
    def consume(self, otp_id: str) -> bool:
        parsed = _parse_id(otp_id)
        if parsed is None:
            return False

        sql = """
            UPDATE otp_verifications
            SET is_used = TRUE
            WHERE id = %s AND is_used = FALSE
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (parsed,))
            return cursor.rowcount == 1


_USER_COLUMNS = """
    id, email, phone, account_status, is_email_verified, is_phone_verified,
    password_hash, first_name, last_name, alternate_phone, date_of_birth,
    gender, privacy_accepted, profile_completed_at, created_at
"""


def _row_to_user(row: dict) -> User:
    return User(
        id=str(row["id"]),
        email=row["email"],
        phone=row["phone"],
        account_status=AccountStatus(row["account_status"]),
        is_email_verified=row["is_email_verified"],
        is_phone_verified=row["is_phone_verified"],
        password_hash=row["password_hash"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        alternate_phone=row["alternate_phone"],
        date_of_birth=row["date_of_birth"],
        gender=Gender(row["gender"]) if row["gender"] else None,
        privacy_accepted=row["privacy_accepted"],
        profile_completed_at=row["profile_completed_at"],
        created_at=row["created_at"],
    )


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    UNIQUE constraints on email and phone make skeleton creation
    idempotent per contact under concurrent verification.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @_store_operation
    def find_by_contact(self, contact_type: ContactType, contact_value: str) -> User | None:
        column = "email" if contact_type is ContactType.EMAIL else "phone"
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE {column} = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (contact_value,))
            row = cursor.fetchone()
        return _row_to_user(row) if row is not None else None

    @_store_operation
    def get(self, user_id: str) -> User | None:
        parsed = _parse_id(user_id)
        if parsed is None:
            return None

        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (parsed,))
            row = cursor.fetchone()
        return _row_to_user(row) if row is not None else None

    @_store_operation
    def create_skeleton(self, contact_type: ContactType, contact_value: str, now) -> str | None:
        is_email = contact_type is ContactType.EMAIL
        sql = """
            INSERT INTO users (
                id, email, phone, account_status,
                is_email_verified, is_phone_verified, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT DO NOTHING
            RETURNING id
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    uuid.uuid4(),
                    contact_value if is_email else None,
                    None if is_email else contact_value,
                    AccountStatus.ACTIVE.value,
                    is_email,
                    not is_email,
                    now,
                    now,
                ),
            )
            row = cursor.fetchone()
        return str(row[0]) if row is not None else None

    @_store_operation
    def set_password(self, user_id: str, password_hash: str, now) -> bool:
        parsed = _parse_id(user_id)
        if parsed is None:
            return False

        sql = """
            UPDATE users
            SET password_hash = %s, updated_at = %s
            WHERE id = %s AND account_status = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (password_hash, now, parsed, AccountStatus.ACTIVE.value))
            return cursor.rowcount == 1

    @_store_operation
    def complete_profile(self, user_id: str, profile: ProfileData, now) -> bool:
        parsed = _parse_id(user_id)
        if parsed is None:
            return False

        sql = """
            UPDATE users
            SET first_name = %s,
                last_name = %s,
                alternate_phone = %s,
                date_of_birth = %s,
                gender = %s,
                privacy_accepted = %s,
                profile_completed_at = %s,
                updated_at = %s
            WHERE id = %s
              AND account_status = %s
              AND password_hash IS NOT NULL
              AND profile_completed_at IS NULL
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    profile.first_name,
                    profile.last_name,
                    profile.phone,
                    profile.date_of_birth,
                    profile.gender.value,
                    profile.privacy_accepted,
                    now,
                    now,
                    parsed,
                    AccountStatus.ACTIVE.value,
                ),
            )
            return cursor.rowcount == 1


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
