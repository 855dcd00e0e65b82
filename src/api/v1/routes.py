"""
API v1 routes.

Defines REST endpoints for the progressive registration API:
- POST /v1/submit-contact - Start registration and send a code
- POST /v1/resend-otp - Issue a fresh code for the same contact
- POST /v1/verify-otp - Redeem the code, create the account, get a token
- POST /v1/set-password - Set the account password (Bearer token)
- POST /v1/complete-profile - Finish registration (Bearer token)
- GET  /v1/registration-status - Next step for the token's account
- POST /v1/login/request-otp, /v1/login/verify-otp - Sign in with a code

Domain errors propagate to the handlers in src.api.errors.
Handlers are plain functions so FastAPI runs them in its threadpool;
bcrypt and the store calls are blocking.
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import (
    get_bearer_token,
    get_login_service,
    get_registration_service,
)
from src.api.models import (
    CompleteProfileRequest,
    CompleteProfileResponse,
    ErrorResponse,
    LoginOtpRequest,
    LoginResponse,
    LoginVerifyRequest,
    OkResponse,
    OtpSentResponse,
    ProfileResponse,
    RegistrationStatusResponse,
    ResendOtpRequest,
    SetPasswordRequest,
    SubmitContactRequest,
    SubmitContactResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from src.domain.login import LoginService
from src.domain.registration import RegistrationService

router = APIRouter(tags=["v1"])

OTP_SENT_MESSAGE = "If this contact can receive codes, an OTP has been sent"

_validation = {422: {"model": ErrorResponse, "description": "Validation error"}}
_unavailable = {503: {"model": ErrorResponse, "description": "Service temporarily unavailable"}}
_otp_errors = {400: {"model": ErrorResponse, "description": "Invalid or expired OTP"}}
_unauthorized = {401: {"model": ErrorResponse, "description": "Missing, invalid or expired token"}}


@router.post(
    "/submit-contact",
    response_model=SubmitContactResponse,
    responses={**_validation, **_unavailable},
    summary="Submit a contact to start registration",
    description="Submit an email address or phone number. "
    "A 6-digit code is sent to it and a registration id is returned.",
)
def submit_contact(
    request_data: SubmitContactRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> SubmitContactResponse:
    result = service.submit_contact(request_data.contact, request_data.method)
    return SubmitContactResponse(
        message=OTP_SENT_MESSAGE,
        registration_id=result.registration_id,
        contact_type=result.contact_type.value,
        expires_in_seconds=result.expires_in_seconds,
    )


@router.post(
    "/resend-otp",
    response_model=OtpSentResponse,
    responses={**_validation, **_unavailable},
    summary="Resend the registration code",
)
def resend_otp(
    request_data: ResendOtpRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> OtpSentResponse:
    result = service.resend_otp(request_data.contact)
    return OtpSentResponse(
        message=OTP_SENT_MESSAGE,
        contact_type=result.contact_type.value,
        expires_in_seconds=result.expires_in_seconds,
    )


@router.post(
    "/verify-otp",
    response_model=VerifyOtpResponse,
    responses={**_otp_errors, **_validation, **_unavailable},
    summary="Verify the registration code",
    description="Redeem the code sent to the contact. On success the account "
    "is created and a bearer token for the remaining steps is returned.",
)
def verify_otp(
    request_data: VerifyOtpRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> VerifyOtpResponse:
    registration_id = request_data.registration_id
    result = service.verify_otp(
        request_data.contact,
        request_data.otp,
        str(registration_id) if registration_id is not None else None,
    )
    return VerifyOtpResponse(
        token=result.token,
        user_id=result.user_id,
        contact_type=result.contact_type.value,
        requires_profile_completion=result.requires_profile_completion,
    )


@router.post(
    "/set-password",
    response_model=OkResponse,
    responses={**_unauthorized, **_validation, **_unavailable},
    summary="Set the account password",
)
def set_password(
    request_data: SetPasswordRequest,
    token: str | None = Depends(get_bearer_token),
    service: RegistrationService = Depends(get_registration_service),
) -> OkResponse:
    service.set_password(token, request_data.password, request_data.confirm_password)
    return OkResponse(message="Password set successfully")


@router.post(
    "/complete-profile",
    response_model=CompleteProfileResponse,
    responses={
        **_unauthorized,
        409: {"model": ErrorResponse, "description": "Step not available"},
        **_validation,
        **_unavailable,
    },
    summary="Complete the account profile",
)
def complete_profile(
    request_data: CompleteProfileRequest,
    token: str | None = Depends(get_bearer_token),
    service: RegistrationService = Depends(get_registration_service),
) -> CompleteProfileResponse:
    user = service.complete_profile(token, request_data.model_dump(by_alias=True))
    return CompleteProfileResponse(
        message="Profile completed successfully",
        profile=ProfileResponse(
            user_id=user.id,
            email=user.email,
            phone=user.phone,
            first_name=user.first_name,
            last_name=user.last_name,
            alternate_phone=user.alternate_phone,
            date_of_birth=user.date_of_birth.isoformat(),
            gender=user.gender.value,
        ),
    )


@router.get(
    "/registration-status",
    response_model=RegistrationStatusResponse,
    responses={**_unauthorized, **_unavailable},
    summary="Get the registration step for the token's account",
)
def registration_status(
    token: str | None = Depends(get_bearer_token),
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationStatusResponse:
    status = service.registration_status(token)
    return RegistrationStatusResponse(
        user_id=status.user_id,
        step=status.step.value,
        password_set=status.password_set,
        profile_complete=status.profile_complete,
        next_step=status.next_step,
    )


@router.post(
    "/login/request-otp",
    response_model=OtpSentResponse,
    responses={**_validation, **_unavailable},
    summary="Request a login code",
)
def request_login_otp(
    request_data: LoginOtpRequest,
    service: LoginService = Depends(get_login_service),
) -> OtpSentResponse:
    result = service.request_login_otp(request_data.contact)
    return OtpSentResponse(
        message=OTP_SENT_MESSAGE,
        contact_type=result.contact_type.value,
        expires_in_seconds=result.expires_in_seconds,
    )


@router.post(
    "/login/verify-otp",
    response_model=LoginResponse,
    responses={**_otp_errors, **_validation, **_unavailable},
    summary="Sign in with a login code",
)
def verify_login_otp(
    request_data: LoginVerifyRequest,
    service: LoginService = Depends(get_login_service),
) -> LoginResponse:
    result = service.verify_login_otp(request_data.contact, request_data.otp)
    return LoginResponse(
        token=result.token,
        user_id=result.user_id,
        requires_profile_completion=result.requires_profile_completion,
    )
