"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the value types that cross them. Adapters
implement these protocols.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Protocol


class ContactMethod(str, Enum):
    """Channel the client asked to receive the code on."""

    EMAIL = "email"
    PHONE = "phone"
    WHATSAPP = "whatsapp"


class ContactType(str, Enum):
    """Shape of a normalized contact value."""

    EMAIL = "email"
    PHONE = "phone"


class AttemptStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"


class OtpPurpose(str, Enum):
    """Flow an OTP authorizes. Codes never verify outside their purpose."""

    REGISTRATION = "registration"
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class RegistrationStep(str, Enum):
    """
    Registration state machine steps.

    State Transitions (forward-only):
    - CONTACT -> OTP_PENDING (contact submitted, code issued)
    - OTP_PENDING -> OTP_PENDING (resend, older code goes stale)
    - OTP_PENDING -> VERIFIED (correct, unexpired, unused code; user created)
    - VERIFIED -> PASSWORD_SET (bearer token required)
    - PASSWORD_SET -> ACTIVE (profile completed, bearer token required)

    Only VERIFIED, PASSWORD_SET and ACTIVE are observable on a user record;
    the earlier steps exist before any user row does.
    """

    CONTACT = "contact"
    OTP_PENDING = "otp_pending"
    VERIFIED = "verified"
    PASSWORD_SET = "password_set"
    ACTIVE = "active"


@dataclass(frozen=True)
class RegistrationAttempt:
    id: str
    contact_value: str
    contact_method: ContactMethod
    status: AttemptStatus
    created_at: datetime
    completed_at: datetime | None = None


@dataclass(frozen=True)
class OtpRecord:
    """Stored OTP. Only the hash of the code is ever persisted."""

    id: str
    contact_value: str
    code_hash: str
    purpose: OtpPurpose
    is_used: bool
    expires_at: datetime
    created_at: datetime


@dataclass(frozen=True)
class IssuedOtp:
    """Freshly issued code; the plaintext leaves the service exactly once."""

    id: str
    plaintext_code: str
    expires_at: datetime


@dataclass(frozen=True)
class ProfileData:
    """Validated, normalized profile submission."""

    first_name: str
    last_name: str
    phone: str
    date_of_birth: date
    gender: Gender
    privacy_accepted: bool


@dataclass(frozen=True)
class User:
    id: str
    email: str | None
    phone: str | None
    account_status: AccountStatus
    is_email_verified: bool
    is_phone_verified: bool
    password_hash: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    alternate_phone: str | None = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    privacy_accepted: bool = False
    profile_completed_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def password_set(self) -> bool:
        return self.password_hash is not None

    @property
    def profile_complete(self) -> bool:
        return self.profile_completed_at is not None

    @property
    def step(self) -> RegistrationStep:
        """Current step, derived only from persisted state."""
        if self.profile_complete:
            return RegistrationStep.ACTIVE
        if self.password_set:
            return RegistrationStep.PASSWORD_SET
        return RegistrationStep.VERIFIED


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: str | None
    phone: str | None
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class MailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class Clock(Protocol):
    """Source of the current time (timezone-aware UTC)."""

    def now(self) -> datetime: ...


class RegistrationAttemptRepository(Protocol):
    """Port interface for registration attempt bookkeeping."""

    def create(self, contact_value: str, method: ContactMethod, now: datetime) -> str:
        """
        Record a contact submission.

        Returns:
            Identifier of the new attempt (status pending)
        """
        ...

    def mark_completed(self, attempt_id: str, contact_value: str, now: datetime) -> bool:
        """
        Transition a pending attempt for the given contact to completed.

        Returns:
            True if a pending attempt was completed, False if it does not
            exist, belongs to another contact, or was already completed
        """
        ...


class OtpRepository(Protocol):
    """Port interface for OTP persistence."""

    def create(
        self,
        contact_value: str,
        code_hash: str,
        purpose: OtpPurpose,
        expires_at: datetime,
        now: datetime,
    ) -> str:
        """Store a new unused code and return its identifier."""
        ...

    def find_active(
        self, contact_value: str, purpose: OtpPurpose, now: datetime
    ) -> OtpRecord | None:
        """
        Select the authoritative code for a contact and purpose.

        Returns the most recently created record where is_used is false and
        expires_at is after ``now``; None when there is no such record.
        """
        ...

    def consume(self, otp_id: str) -> bool:
        """
        Atomically mark a code as used.

        Implementation must gate the update on is_used = false so that
        exactly one concurrent caller observes True.
        """
        ...


class UserRepository(Protocol):
    """Port interface for user persistence."""

    def find_by_contact(self, contact_type: ContactType, contact_value: str) -> User | None: ...

    def get(self, user_id: str) -> User | None: ...

    def create_skeleton(
        self, contact_type: ContactType, contact_value: str, now: datetime
    ) -> str | None:
        """
        Create a minimal active user for a verified contact.

        Returns:
            New user id, or None when the contact already belongs to a user
        """
        ...

    def set_password(self, user_id: str, password_hash: str, now: datetime) -> bool:
        """Store a password hash for an active user. False if no such user."""
        ...

    def complete_profile(self, user_id: str, profile: ProfileData, now: datetime) -> bool:
        """
        Persist profile fields and mark the profile complete.

        Only applies to an active user whose password is set and whose
        profile is not complete yet; returns False otherwise.
        """
        ...


class TokenService(Protocol):
    """Port interface for signed, time-bounded bearer tokens."""

    def issue_token(
        self, user_id: str, email: str | None, phone: str | None
    ) -> tuple[str, TokenClaims]: ...

    def verify_token(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises:
            Unauthorized: Signature invalid, token malformed or expired
        """
        ...


class Mailer(Protocol):
    """Port interface for outbound email."""

    def is_available(self) -> bool:
        """False when the channel is not configured at all."""
        ...

    def send(self, to: str, subject: str, html: str) -> MailResult: ...


class SmsSender(Protocol):
    """Port interface for phone channels (SMS / WhatsApp)."""

    def send_code(self, phone: str, code: str, purpose: OtpPurpose) -> None: ...
