"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for progressive OTP
registration. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .exceptions import (
    EmailDeliveryUnavailable,
    InvalidOrExpiredOtp,
    InvalidOtp,
    PasswordMismatch,
    RegistrationError,
    ServiceUnavailable,
    StepOutOfOrder,
    Unauthorized,
    ValidationError,
    WeakPassword,
)
from .login import LoginResult, LoginService
from .notifications import NotificationDispatcher
from .otp import OtpService
from .ports import (
    Clock,
    ContactType,
    Mailer,
    OtpPurpose,
    OtpRepository,
    RegistrationAttemptRepository,
    RegistrationStep,
    SmsSender,
    TokenService,
    UserRepository,
)
from .registration import RegistrationService, RegistrationStatus, VerificationResult

__all__ = [
    "Clock",
    "ContactType",
    "EmailDeliveryUnavailable",
    "InvalidOrExpiredOtp",
    "InvalidOtp",
    "LoginResult",
    "LoginService",
    "Mailer",
    "NotificationDispatcher",
    "OtpPurpose",
    "OtpRepository",
    "OtpService",
    "PasswordMismatch",
    "RegistrationAttemptRepository",
    "RegistrationError",
    "RegistrationService",
    "RegistrationStatus",
    "RegistrationStep",
    "ServiceUnavailable",
    "SmsSender",
    "StepOutOfOrder",
    "TokenService",
    "Unauthorized",
    "UserRepository",
    "ValidationError",
    "VerificationResult",
    "WeakPassword",
]
