"""
Exception handlers - map domain errors onto the HTTP error envelope.

Every error response has the shape::

    {"detail": "<generic message>", "kind": "<machine kind>", "fields": {...}}

``fields`` is only present for field-scoped validation failures.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.domain.exceptions import (
    EmailDeliveryUnavailable,
    InvalidOrExpiredOtp,
    InvalidOtp,
    RegistrationError,
    ServiceUnavailable,
    StepOutOfOrder,
    Unauthorized,
    ValidationError,
)

# Most specific classes first; subclasses of ValidationError share its status.
STATUS_CODES: list[tuple[type[RegistrationError], int]] = [
    (ValidationError, 422),
    (InvalidOrExpiredOtp, status.HTTP_400_BAD_REQUEST),
    (InvalidOtp, status.HTTP_400_BAD_REQUEST),
    (Unauthorized, status.HTTP_401_UNAUTHORIZED),
    (StepOutOfOrder, status.HTTP_409_CONFLICT),
    (EmailDeliveryUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ServiceUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(error: RegistrationError) -> int:
    for error_type, code in STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def error_body(kind: str, detail: str, fields: dict[str, list[str]] | None = None) -> dict:
    body: dict = {"detail": detail, "kind": kind}
    if fields:
        body["fields"] = fields
    return body


async def registration_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    code = status_code_for(exc)
    headers = None
    if isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(exc, (ServiceUnavailable, EmailDeliveryUnavailable)):
        headers = {"Retry-After": "5"}

    return JSONResponse(
        status_code=code,
        content=error_body(exc.kind, exc.message, getattr(exc, "fields", None)),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request-body schema errors in the same field-scoped envelope."""
    fields: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(location) or "body"
        fields.setdefault(field, []).append(error.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content=error_body(ValidationError.kind, ValidationError.message, fields),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RegistrationError, registration_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
