"""
Login domain service - passwordless sign-in with login-purpose OTPs.

Codes are scoped to OtpPurpose.LOGIN, so a registration code can never be
replayed to sign in and a login code can never create an account.
"""

import logging
from dataclasses import dataclass

from .exceptions import EmailDeliveryUnavailable, InvalidOrExpiredOtp
from .notifications import NotificationDispatcher
from .otp import OtpService
from .ports import AccountStatus, ContactType, OtpPurpose, TokenService, UserRepository
from .registration import SubmissionResult
from .validation import check_otp_format, normalize_contact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    token: str
    user_id: str
    requires_profile_completion: bool


@dataclass
class LoginService:
    users: UserRepository
    otp: OtpService
    tokens: TokenService
    notifications: NotificationDispatcher

    def request_login_otp(self, contact: str) -> SubmissionResult:
        """
        Send a login code if the contact belongs to an active account.

        The caller cannot tell whether a code was sent.
        """
        contact_type, contact_value = normalize_contact(contact)
        if contact_type is ContactType.EMAIL and not self.notifications.email_available():
            raise EmailDeliveryUnavailable()

        user = self.users.find_by_contact(contact_type, contact_value)
        if user is None or user.account_status is not AccountStatus.ACTIVE:
            logger.info("Login code requested for unknown or inactive %s", contact_type.value)
            return self._sent(contact_type)

        issued = self.otp.issue(contact_value, OtpPurpose.LOGIN)
        self.notifications.send_otp(
            contact_value, contact_type, issued.plaintext_code, OtpPurpose.LOGIN
        )
        return self._sent(contact_type)

    def verify_login_otp(self, contact: str, code: str) -> LoginResult:
        """
        Redeem a login code and issue a token for the account.

        Raises:
            InvalidOrExpiredOtp: No active login code, or the account vanished
                or was suspended after the code was issued
            InvalidOtp: Wrong code for an active record
        """
        contact_type, contact_value = normalize_contact(contact)
        code = check_otp_format(code, self.otp.code_length)

        self.otp.redeem(contact_value, code, OtpPurpose.LOGIN)

        user = self.users.find_by_contact(contact_type, contact_value)
        if user is None or user.account_status is not AccountStatus.ACTIVE:
            raise InvalidOrExpiredOtp()

        token, _ = self.tokens.issue_token(user.id, user.email, user.phone)
        logger.info("User %s signed in with a login code", user.id)
        return LoginResult(
            token=token,
            user_id=user.id,
            requires_profile_completion=not user.profile_complete,
        )

    def _sent(self, contact_type: ContactType) -> SubmissionResult:
        return SubmissionResult(
            registration_id=None,
            contact_type=contact_type,
            expires_in_seconds=self.otp.ttl_seconds,
        )
