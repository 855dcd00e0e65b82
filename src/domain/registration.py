"""
Registration domain service - progressive OTP registration state machine.

This module contains the core business logic for account registration,
from contact submission through profile completion.

Registration State Machine (Forward-Only Transitions)
=====================================================

States:
- CONTACT: Client has not submitted a contact yet
- OTP_PENDING: A registration code was issued for the contact
- VERIFIED: Code redeemed, user skeleton created, bearer token issued
- PASSWORD_SET: Password stored for the user
- ACTIVE: Terminal state after profile completion

Valid Transitions:
    CONTACT      -> OTP_PENDING   (submit contact)
    OTP_PENDING  -> OTP_PENDING   (resend; the older code goes stale)
    OTP_PENDING  -> VERIFIED      (correct, unexpired, unused code)
    VERIFIED     -> PASSWORD_SET  (set password, token required)
    PASSWORD_SET -> PASSWORD_SET  (set password again overwrites it)
    PASSWORD_SET -> ACTIVE        (complete profile, token required)

Invalid Transitions (never allowed):
    VERIFIED -> ACTIVE            (no skipping the password step)
    ACTIVE   -> any               (ACTIVE is terminal)

The current state of a user is derived only from the persisted user record
(see User.step), never from anything the client claims.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .credentials import check_password_policy, hash_password
from .exceptions import (
    EmailDeliveryUnavailable,
    InvalidOrExpiredOtp,
    PasswordMismatch,
    RegistrationError,
    StepOutOfOrder,
    Unauthorized,
    WeakPassword,
)
from .notifications import NotificationDispatcher
from .otp import OtpService
from .ports import (
    AccountStatus,
    Clock,
    ContactType,
    OtpPurpose,
    RegistrationAttemptRepository,
    RegistrationStep,
    TokenClaims,
    TokenService,
    User,
    UserRepository,
)
from .validation import (
    check_method,
    check_otp_format,
    normalize_contact,
    parse_method,
    validate_profile,
)

logger = logging.getLogger(__name__)

WELCOME_NAME = "User"


@dataclass(frozen=True)
class SubmissionResult:
    registration_id: str | None
    contact_type: ContactType
    expires_in_seconds: int


@dataclass(frozen=True)
class VerificationResult:
    token: str
    user_id: str
    contact_type: ContactType
    requires_profile_completion: bool = True


@dataclass(frozen=True)
class RegistrationStatus:
    user_id: str
    step: RegistrationStep
    password_set: bool
    profile_complete: bool

    @property
    def next_step(self) -> str | None:
        if not self.password_set:
            return "set_password"
        if not self.profile_complete:
            return "complete_profile"
        return None


@dataclass(frozen=True)
class BestEffort:
    """
    Outcome of a side update that is allowed to fail.

    Callers log a failed outcome and carry on; the main operation has
    already succeeded and must not be rolled back because of it.
    """

    ok: bool
    reason: str | None = None


def authenticate(tokens: TokenService, token: str | None) -> TokenClaims:
    """Resolve a bearer token to its claims, or raise Unauthorized."""
    if not token or not token.strip():
        raise Unauthorized()
    return tokens.verify_token(token)


@dataclass
class RegistrationService:
    """
    Domain service for progressive registration.

    Orchestrates contact submission, OTP verification, password creation and
    profile completion. All collaborators are injected.
    """

    users: UserRepository
    attempts: RegistrationAttemptRepository
    otp: OtpService
    tokens: TokenService
    notifications: NotificationDispatcher
    clock: Clock
    bcrypt_rounds: int = 10

    def submit_contact(self, contact: str, method: str | None = None) -> SubmissionResult:
        """
        Start a registration for a contact and send it a code.

        An already registered contact gets an identical response, but no
        code is issued and nothing is sent.

        Raises:
            ValidationError: Malformed contact or unsupported method
            EmailDeliveryUnavailable: The mail channel is not configured
            ServiceUnavailable: Store failure
        """
        contact_type, contact_value = normalize_contact(contact)
        contact_method = parse_method(method, contact_type)
        check_method(contact_type, contact_method)

        if contact_type is ContactType.EMAIL and not self.notifications.email_available():
            raise EmailDeliveryUnavailable()

        registration_id = self.attempts.create(contact_value, contact_method, self.clock.now())
        self._issue_and_send(contact_type, contact_value)
        return SubmissionResult(
            registration_id=registration_id,
            contact_type=contact_type,
            expires_in_seconds=self.otp.ttl_seconds,
        )

    def resend_otp(self, contact: str) -> SubmissionResult:
        """
        Issue a fresh code for a contact already in OTP_PENDING.

        The previous code is left in place but is no longer authoritative.
        """
        contact_type, contact_value = normalize_contact(contact)
        if contact_type is ContactType.EMAIL and not self.notifications.email_available():
            raise EmailDeliveryUnavailable()

        self._issue_and_send(contact_type, contact_value)
        return SubmissionResult(
            registration_id=None,
            contact_type=contact_type,
            expires_in_seconds=self.otp.ttl_seconds,
        )

    def verify_otp(
        self, contact: str, code: str, registration_id: str | None = None
    ) -> VerificationResult:
        """
        Redeem a registration code and create the user skeleton.

        Args:
            contact: Email or phone the code was sent to (normalized here)
            code: Numeric code of the configured length
            registration_id: Optional attempt id for bookkeeping only

        Raises:
            ValidationError: Malformed contact or code
            InvalidOrExpiredOtp: No active code, lost a race, or the contact
                is already registered
            InvalidOtp: Wrong code for an active record
            ServiceUnavailable: Store failure
        """
        contact_type, contact_value = normalize_contact(contact)
        code = check_otp_format(code, self.otp.code_length)

        self.otp.redeem(contact_value, code, OtpPurpose.REGISTRATION)

        user_id = self.users.create_skeleton(contact_type, contact_value, self.clock.now())
        if user_id is None:
            logger.warning("Verified code for an already registered %s", contact_type.value)
            raise InvalidOrExpiredOtp()

        if registration_id:
            outcome = self._complete_attempt(registration_id, contact_value)
            if not outcome.ok:
                logger.warning(
                    "Registration attempt %s not completed: %s", registration_id, outcome.reason
                )

        email = contact_value if contact_type is ContactType.EMAIL else None
        phone = contact_value if contact_type is ContactType.PHONE else None
        token, _ = self.tokens.issue_token(user_id, email, phone)

        if email is not None:
            self.notifications.send_welcome(email, WELCOME_NAME)

        logger.info("User %s created via %s verification", user_id, contact_type.value)
        return VerificationResult(
            token=token,
            user_id=user_id,
            contact_type=contact_type,
            requires_profile_completion=True,
        )

    def set_password(self, token: str | None, password: str, confirm_password: str) -> None:
        """
        Store a password for the token's user. Re-invoking overwrites it.

        Raises:
            Unauthorized: Invalid token, unknown or suspended user
            PasswordMismatch: Confirmation differs
            WeakPassword: Password policy not met
        """
        claims = authenticate(self.tokens, token)

        if password != confirm_password:
            raise PasswordMismatch()
        problems = check_password_policy(password)
        if problems:
            raise WeakPassword(problems)

        password_hash = hash_password(password, self.bcrypt_rounds)
        if not self.users.set_password(claims.subject, password_hash, self.clock.now()):
            raise Unauthorized()
        logger.info("Password set for user %s", claims.subject)

    def complete_profile(self, token: str | None, profile_data: Mapping[str, Any]) -> User:
        """
        Persist the mandatory profile and finish registration.

        Raises:
            Unauthorized: Invalid token, unknown or suspended user
            ValidationError: Field-scoped problems with the submission
            StepOutOfOrder: Password not set yet, or profile already complete
        """
        claims = authenticate(self.tokens, token)
        now = self.clock.now()
        profile = validate_profile(profile_data, today=now.date())

        user = self._active_user(claims.subject)
        if not user.password_set:
            raise StepOutOfOrder("Set a password before completing your profile")
        if user.profile_complete:
            raise StepOutOfOrder("Profile is already complete")

        if not self.users.complete_profile(user.id, profile, now):
            raise StepOutOfOrder()

        logger.info("Profile completed for user %s", user.id)
        return self._active_user(user.id)

    def registration_status(self, token: str | None) -> RegistrationStatus:
        claims = authenticate(self.tokens, token)
        user = self._active_user(claims.subject)
        return RegistrationStatus(
            user_id=user.id,
            step=user.step,
            password_set=user.password_set,
            profile_complete=user.profile_complete,
        )

    def _issue_and_send(self, contact_type: ContactType, contact_value: str) -> None:
        if self.users.find_by_contact(contact_type, contact_value) is not None:
            logger.info("Registration requested for an existing %s; no code issued", contact_type.value)
            return

        issued = self.otp.issue(contact_value, OtpPurpose.REGISTRATION)
        self.notifications.send_otp(
            contact_value, contact_type, issued.plaintext_code, OtpPurpose.REGISTRATION
        )

    def _complete_attempt(self, registration_id: str, contact_value: str) -> BestEffort:
        try:
            completed = self.attempts.mark_completed(
                registration_id, contact_value, self.clock.now()
            )
        except RegistrationError as e:
            return BestEffort(ok=False, reason=e.kind)
        if not completed:
            return BestEffort(ok=False, reason="not pending")
        return BestEffort(ok=True)

    def _active_user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if user is None or user.account_status is not AccountStatus.ACTIVE:
            raise Unauthorized()
        return user
