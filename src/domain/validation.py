"""
Input validation and normalization for the registration flow.

Every failure is reported as a field-scoped ValidationError so clients can
surface messages next to the offending input.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from email_validator import EmailNotValidError, validate_email

from .exceptions import ValidationError
from .ports import ContactMethod, ContactType, Gender, ProfileData

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15

_NAME_PATTERN = re.compile(r"^[A-Za-z\s\-']{2,50}$")

# Accepted date of birth layouts, canonicalized to ISO YYYY-MM-DD
_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y", "%d/%m/%Y")


def normalize_phone(value: str) -> str:
    return re.sub(r"\D", "", value)


def normalize_contact(contact: str | None) -> tuple[ContactType, str]:
    """
    Classify and normalize a contact value.

    Emails (anything containing ``@``) are stripped and lowercased; phone
    numbers are reduced to digits only.

    Raises:
        ValidationError: Missing contact, malformed email or phone number
    """
    contact = (contact or "").strip()
    if not contact:
        raise ValidationError({"contact": ["Contact information is required"]})

    if "@" in contact:
        try:
            validate_email(contact, check_deliverability=False)
        except EmailNotValidError:
            raise ValidationError({"contact": ["Enter a valid email address"]}) from None
        return ContactType.EMAIL, contact.lower()

    digits = normalize_phone(contact)
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        raise ValidationError(
            {"contact": [f"Phone number must be {MIN_PHONE_DIGITS}-{MAX_PHONE_DIGITS} digits"]}
        )
    return ContactType.PHONE, digits


def check_method(contact_type: ContactType, method: ContactMethod) -> None:
    """Reject a delivery method that cannot reach the given contact."""
    if contact_type is ContactType.EMAIL and method is not ContactMethod.EMAIL:
        raise ValidationError({"method": ["Email addresses can only be verified by email"]})
    if contact_type is ContactType.PHONE and method is ContactMethod.EMAIL:
        raise ValidationError({"method": ["Phone numbers cannot be verified by email"]})


def parse_method(
    method: str | ContactMethod | None, contact_type: ContactType = ContactType.EMAIL
) -> ContactMethod:
    """Parse a delivery method; without one, the contact's own channel is used."""
    if method is None or method == "":
        return ContactMethod.PHONE if contact_type is ContactType.PHONE else ContactMethod.EMAIL
    try:
        return ContactMethod(method)
    except ValueError:
        raise ValidationError({"method": ["Method must be one of email, phone, whatsapp"]}) from None


def check_otp_format(code: str | None, length: int = 6) -> str:
    code = (code or "").strip()
    if len(code) != length or not code.isascii() or not code.isdigit():
        raise ValidationError({"otp": [f"OTP must be exactly {length} digits"]})
    return code


def normalize_date_of_birth(value: Any, today: date) -> date:
    """
    Parse a date of birth in any accepted layout.

    Raises:
        ValueError: Unrecognized layout or a date in the future
    """
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    else:
        text = str(value).strip()
        parsed = None
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt).date()
                break
            except ValueError:
                continue
        if parsed is None:
            # Full ISO-8601 timestamps, e.g. from JavaScript's toISOString()
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00")).date()

    if parsed > today:
        raise ValueError("date of birth is in the future")
    return parsed


def validate_profile(data: Mapping[str, Any], today: date) -> ProfileData:
    """
    Validate a complete-profile submission keyed by its wire field names.

    All fields are mandatory. Every problem found is reported at once.

    Raises:
        ValidationError: With one entry per invalid or missing field
    """
    errors: dict[str, list[str]] = {}

    def required(field: str, label: str) -> Any:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.setdefault(field, []).append(f"{label} is required")
            return None
        return value

    first_name = required("firstName", "First name")
    if first_name is not None and not _NAME_PATTERN.match(str(first_name).strip()):
        errors.setdefault("firstName", []).append(
            "First name must be 2-50 letters, spaces, hyphens or apostrophes"
        )

    last_name = required("lastName", "Last name")
    if last_name is not None and not _NAME_PATTERN.match(str(last_name).strip()):
        errors.setdefault("lastName", []).append(
            "Last name must be 2-50 letters, spaces, hyphens or apostrophes"
        )

    phone = required("phone", "Phone number")
    phone_digits = ""
    if phone is not None:
        raw = str(phone)
        phone_digits = normalize_phone(raw)
        if re.search(r"[^0-9+\-\s()]", raw) or not (
            MIN_PHONE_DIGITS <= len(phone_digits) <= MAX_PHONE_DIGITS
        ):
            errors.setdefault("phone", []).append(
                f"Phone number must be {MIN_PHONE_DIGITS}-{MAX_PHONE_DIGITS} digits"
            )

    date_of_birth = required("dateOfBirth", "Date of birth")
    parsed_date = None
    if date_of_birth is not None:
        try:
            parsed_date = normalize_date_of_birth(date_of_birth, today)
        except ValueError:
            errors.setdefault("dateOfBirth", []).append(
                "Date of birth must be a valid past date (YYYY-MM-DD)"
            )

    gender = required("gender", "Gender")
    parsed_gender = None
    if gender is not None:
        try:
            parsed_gender = Gender(str(gender).strip().lower())
        except ValueError:
            errors.setdefault("gender", []).append(
                "Gender must be one of male, female, other, prefer_not_to_say"
            )

    privacy_accepted = data.get("privacyAccepted")
    if privacy_accepted is not True:
        errors.setdefault("privacyAccepted", []).append("You must accept the privacy policy")

    if errors:
        raise ValidationError(errors)

    return ProfileData(
        first_name=str(first_name).strip(),
        last_name=str(last_name).strip(),
        phone=phone_digits,
        date_of_birth=parsed_date,
        gender=parsed_gender,
        privacy_accepted=True,
    )
