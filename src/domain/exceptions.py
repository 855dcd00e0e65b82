"""
Domain exceptions - Semantic error types for registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Every error carries a machine-readable ``kind`` for client branching and a
stable, generic ``message``. OTP errors never reveal whether a contact
exists in the system.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    kind = "registration_error"
    message = "Registration failed"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(RegistrationError):
    """Malformed or missing input, scoped to the offending fields."""

    kind = "validation_error"
    message = "Validation failed"

    def __init__(self, fields: dict[str, list[str]], message: str | None = None) -> None:
        self.fields = fields
        super().__init__(message)


class PasswordMismatch(ValidationError):
    """Password and confirmation differ."""

    kind = "password_mismatch"
    message = "Passwords don't match"

    def __init__(self) -> None:
        super().__init__({"confirmPassword": ["Passwords don't match"]})


class WeakPassword(ValidationError):
    """Password does not satisfy the password policy."""

    kind = "weak_password"
    message = "Password does not meet the password policy"

    def __init__(self, problems: list[str]) -> None:
        super().__init__({"password": problems})


class InvalidOrExpiredOtp(RegistrationError):
    """No usable code: never requested, already used, or expired."""

    kind = "invalid_or_expired_otp"
    message = "Invalid or expired OTP. Please request a new one."


class InvalidOtp(RegistrationError):
    """An active code exists but the candidate does not match it."""

    kind = "invalid_otp"
    message = "Invalid OTP. Please check and try again."


class Unauthorized(RegistrationError):
    """Missing, malformed, tampered or expired bearer token."""

    kind = "unauthorized"
    message = "Unauthorized access"


class StepOutOfOrder(RegistrationError):
    """Requested step is not reachable from the account's current state."""

    kind = "step_out_of_order"
    message = "This registration step is not available"


class EmailDeliveryUnavailable(RegistrationError):
    """The email channel is not reachable at all."""

    kind = "email_delivery_unavailable"
    message = "Email service temporarily unavailable. Please try again later."


class ServiceUnavailable(RegistrationError):
    """Backing store or another dependency failed; safe to retry."""

    kind = "service_unavailable"
    message = "Service temporarily unavailable. Please try again."
