"""
Shared test fixtures and configuration.

This module provides in-memory implementations of the domain ports so the
registration flow can be exercised without PostgreSQL or a mail relay:
- FakeClock: controllable "now"
- InMemory*Repository: thread-safe stores with the same atomicity
  guarantees as the Postgres adapters
- RecordingMailer / RecordingSmsSender: capture outbound messages
- ImmediateExecutor: runs notification work inline

It also provides the PostgreSQL pool used by integration and adversarial
tests.
"""

import re
import threading
import uuid
from collections.abc import Generator
from concurrent.futures import Executor, Future
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.adapters.tokens.jwt import JwtTokenService
from src.config.settings import get_settings
from src.domain.login import LoginService
from src.domain.notifications import NotificationDispatcher
from src.domain.otp import OtpService
from src.domain.ports import (
    AccountStatus,
    AttemptStatus,
    ContactMethod,
    ContactType,
    MailResult,
    OtpPurpose,
    OtpRecord,
    ProfileData,
    RegistrationAttempt,
    User,
)
from src.domain.registration import RegistrationService

TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"
START_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

_CODE_PATTERN = re.compile(r">(\d+)<")


class FakeClock:
    def __init__(self, now: datetime = START_TIME) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


class InMemoryAttemptRepository:
    def __init__(self) -> None:
        self.attempts: dict[str, RegistrationAttempt] = {}
        self._lock = threading.Lock()

    def create(self, contact_value: str, method: ContactMethod, now: datetime) -> str:
        attempt_id = str(uuid.uuid4())
        with self._lock:
            self.attempts[attempt_id] = RegistrationAttempt(
                id=attempt_id,
                contact_value=contact_value,
                contact_method=method,
                status=AttemptStatus.PENDING,
                created_at=now,
            )
        return attempt_id

    def mark_completed(self, attempt_id: str, contact_value: str, now: datetime) -> bool:
        with self._lock:
            attempt = self.attempts.get(attempt_id)
            if (
                attempt is None
                or attempt.contact_value != contact_value
                or attempt.status is not AttemptStatus.PENDING
            ):
                return False
            self.attempts[attempt_id] = replace(
                attempt, status=AttemptStatus.COMPLETED, completed_at=now
            )
            return True


class InMemoryOtpRepository:
    def __init__(self) -> None:
        self.records: list[OtpRecord] = []
        self._lock = threading.Lock()

    def create(self, contact_value, code_hash, purpose, expires_at, now) -> str:
        otp_id = str(uuid.uuid4())
        with self._lock:
            self.records.append(
                OtpRecord(
                    id=otp_id,
                    contact_value=contact_value,
                    code_hash=code_hash,
                    purpose=purpose,
                    is_used=False,
                    expires_at=expires_at,
                    created_at=now,
                )
            )
        return otp_id

    def find_active(self, contact_value, purpose, now) -> OtpRecord | None:
        with self._lock:
            # Later appends win ties on created_at, like issued_seq in Postgres
            for record in reversed(self.records):
                if (
                    record.contact_value == contact_value
                    and record.purpose == purpose
                    and not record.is_used
                    and record.expires_at > now
                ):
                    return record
        return None

    def consume(self, otp_id: str) -> bool:
        with self._lock:
            for index, record in enumerate(self.records):
                if record.id == otp_id:
                    if record.is_used:
                        return False
                    self.records[index] = replace(record, is_used=True)
                    return True
        return False


class InMemoryUserRepository:
    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.writes = 0
        self._lock = threading.Lock()

    def find_by_contact(self, contact_type, contact_value) -> User | None:
        for user in list(self.users.values()):
            value = user.email if contact_type is ContactType.EMAIL else user.phone
            if value == contact_value:
                return user
        return None

    def get(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    def create_skeleton(self, contact_type, contact_value, now) -> str | None:
        with self._lock:
            if self.find_by_contact(contact_type, contact_value) is not None:
                return None
            is_email = contact_type is ContactType.EMAIL
            user_id = str(uuid.uuid4())
            self.users[user_id] = User(
                id=user_id,
                email=contact_value if is_email else None,
                phone=None if is_email else contact_value,
                account_status=AccountStatus.ACTIVE,
                is_email_verified=is_email,
                is_phone_verified=not is_email,
                created_at=now,
            )
            self.writes += 1
            return user_id

    def set_password(self, user_id, password_hash, now) -> bool:
        with self._lock:
            user = self.users.get(user_id)
            if user is None or user.account_status is not AccountStatus.ACTIVE:
                return False
            self.users[user_id] = replace(user, password_hash=password_hash)
            self.writes += 1
            return True

    def complete_profile(self, user_id, profile: ProfileData, now) -> bool:
        with self._lock:
            user = self.users.get(user_id)
            if (
                user is None
                or user.account_status is not AccountStatus.ACTIVE
                or user.password_hash is None
                or user.profile_completed_at is not None
            ):
                return False
            self.users[user_id] = replace(
                user,
                first_name=profile.first_name,
                last_name=profile.last_name,
                alternate_phone=profile.phone,
                date_of_birth=profile.date_of_birth,
                gender=profile.gender,
                privacy_accepted=profile.privacy_accepted,
                profile_completed_at=now,
            )
            self.writes += 1
            return True

    def suspend(self, user_id: str) -> None:
        self.users[user_id] = replace(self.users[user_id], account_status=AccountStatus.SUSPENDED)


class RecordingMailer:
    def __init__(self, available: bool = True, succeed: bool = True) -> None:
        self.available = available
        self.succeed = succeed
        self.sent: list[tuple[str, str, str]] = []

    def is_available(self) -> bool:
        return self.available

    def send(self, to: str, subject: str, html: str) -> MailResult:
        self.sent.append((to, subject, html))
        if not self.succeed:
            return MailResult(success=False, error="relay rejected message")
        return MailResult(success=True, message_id=f"<{len(self.sent)}@test>")

    def codes_for(self, to: str) -> list[str]:
        return [
            match.group(1)
            for recipient, _, html in self.sent
            if recipient == to
            for match in [_CODE_PATTERN.search(html)]
            if match
        ]

    def last_code(self, to: str) -> str:
        return self.codes_for(to)[-1]


class RecordingSmsSender:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, OtpPurpose]] = []

    def send_code(self, phone: str, code: str, purpose: OtpPurpose) -> None:
        self.sent.append((phone, code, purpose))

    def last_code(self, phone: str) -> str:
        return [code for recipient, code, _ in self.sent if recipient == phone][-1]


class ImmediateExecutor(Executor):
    """Runs submitted work on the calling thread."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs) -> Future:
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def otp_repository() -> InMemoryOtpRepository:
    return InMemoryOtpRepository()


@pytest.fixture
def attempt_repository() -> InMemoryAttemptRepository:
    return InMemoryAttemptRepository()


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def sms_sender() -> RecordingSmsSender:
    return RecordingSmsSender()


@pytest.fixture
def dispatcher(mailer: RecordingMailer, sms_sender: RecordingSmsSender) -> NotificationDispatcher:
    return NotificationDispatcher(mailer=mailer, sms_sender=sms_sender, executor=ImmediateExecutor())


@pytest.fixture
def token_service(clock: FakeClock) -> JwtTokenService:
    return JwtTokenService(secret=TEST_SECRET, clock=clock, ttl_seconds=3600)


@pytest.fixture
def otp_service(otp_repository: InMemoryOtpRepository, clock: FakeClock) -> OtpService:
    return OtpService(repository=otp_repository, clock=clock, ttl_seconds=600)


@pytest.fixture
def registration_service(
    user_repository: InMemoryUserRepository,
    attempt_repository: InMemoryAttemptRepository,
    otp_service: OtpService,
    token_service: JwtTokenService,
    dispatcher: NotificationDispatcher,
    clock: FakeClock,
) -> RegistrationService:
    # Minimum bcrypt cost keeps the suite fast
    return RegistrationService(
        users=user_repository,
        attempts=attempt_repository,
        otp=otp_service,
        tokens=token_service,
        notifications=dispatcher,
        clock=clock,
        bcrypt_rounds=4,
    )


@pytest.fixture
def login_service(
    user_repository: InMemoryUserRepository,
    otp_service: OtpService,
    token_service: JwtTokenService,
    dispatcher: NotificationDispatcher,
) -> LoginService:
    return LoginService(
        users=user_repository,
        otp=otp_service,
        tokens=token_service,
        notifications=dispatcher,
    )


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against the configured database, migrated once.

    Tests that need it are skipped when PostgreSQL is not reachable.
    """
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    try:
        pool.wait(timeout=2)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty the registration tables before each test."""
    with pool.connection() as conn:
        conn.execute("TRUNCATE registration_attempts, otp_verifications, users")
    yield
