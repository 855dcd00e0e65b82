"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
JSON field names are camelCase; Python attributes are snake_case.

Request models are deliberately permissive about presence: the domain layer
owns field validation so that every failure comes back in the same
field-scoped error envelope.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubmitContactRequest(ApiModel):
    """Request model for starting a registration."""

    contact: str = Field(..., description="Email address or phone number")
    method: str | None = Field(
        None,
        description="Delivery method: email, phone or whatsapp. Defaults to the contact's own channel",
    )


class SubmitContactResponse(ApiModel):
    message: str
    registration_id: str
    contact_type: str
    expires_in_seconds: int


class ResendOtpRequest(ApiModel):
    contact: str


class OtpSentResponse(ApiModel):
    message: str
    contact_type: str
    expires_in_seconds: int


class VerifyOtpRequest(ApiModel):
    """Request model for OTP verification."""

    contact: str
    otp: str = Field(..., description="6-digit code")
    registration_id: str | int | None = Field(
        None, description="Optional id returned by submit-contact"
    )


class VerifyOtpResponse(ApiModel):
    token: str
    user_id: str
    contact_type: str
    requires_profile_completion: bool


class SetPasswordRequest(ApiModel):
    password: str
    confirm_password: str


class CompleteProfileRequest(ApiModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    privacy_accepted: bool | None = None


class ProfileResponse(ApiModel):
    user_id: str
    email: str | None
    phone: str | None
    first_name: str
    last_name: str
    alternate_phone: str
    date_of_birth: str
    gender: str


class OkResponse(ApiModel):
    ok: bool = True
    message: str


class CompleteProfileResponse(OkResponse):
    profile: ProfileResponse


class RegistrationStatusResponse(ApiModel):
    user_id: str
    step: str
    password_set: bool
    profile_complete: bool
    next_step: str | None


class LoginOtpRequest(ApiModel):
    contact: str


class LoginVerifyRequest(ApiModel):
    contact: str
    otp: str


class LoginResponse(ApiModel):
    token: str
    user_id: str
    requires_profile_completion: bool


class ErrorResponse(ApiModel):
    """Standard error response model."""

    detail: str
    kind: str
    fields: dict[str, list[str]] | None = None
