"""
Unit tests for domain ports, value types and exceptions.

Also guards the hexagonal boundary: the domain package never imports
framework or infrastructure libraries.
"""

import re
from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.domain.exceptions import (
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
from src.domain.ports import AccountStatus, RegistrationStep, User

DOMAIN_DIR = Path(__file__).resolve().parents[2] / "src" / "domain"
FORBIDDEN_IMPORTS = ("fastapi", "pydantic", "psycopg", "psycopg_pool", "jwt", "smtplib", "starlette")


def make_user(**overrides) -> User:
    fields = {
        "id": "user-1",
        "email": "a@example.com",
        "phone": None,
        "account_status": AccountStatus.ACTIVE,
        "is_email_verified": True,
        "is_phone_verified": False,
    }
    fields.update(overrides)
    return User(**fields)


class TestUserStep:
    """The registration step is derived from persisted state only."""

    def test_fresh_user_is_verified(self) -> None:
        assert make_user().step is RegistrationStep.VERIFIED

    def test_password_set(self) -> None:
        user = make_user(password_hash="$2b$10$hash")
        assert user.password_set is True
        assert user.step is RegistrationStep.PASSWORD_SET

    def test_profile_complete_is_active(self) -> None:
        user = make_user(
            password_hash="$2b$10$hash",
            profile_completed_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        )
        assert user.step is RegistrationStep.ACTIVE

    def test_user_is_immutable(self) -> None:
        with pytest.raises(AttributeError):
            make_user().email = "b@example.com"


class TestExceptions:
    """Tests for domain error kinds and messages."""

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (ValidationError({"contact": ["bad"]}), "validation_error"),
            (PasswordMismatch(), "password_mismatch"),
            (WeakPassword(["too short"]), "weak_password"),
            (InvalidOrExpiredOtp(), "invalid_or_expired_otp"),
            (InvalidOtp(), "invalid_otp"),
            (Unauthorized(), "unauthorized"),
            (StepOutOfOrder(), "step_out_of_order"),
            (EmailDeliveryUnavailable(), "email_delivery_unavailable"),
            (ServiceUnavailable(), "service_unavailable"),
        ],
    )
    def test_kinds(self, error: RegistrationError, kind: str) -> None:
        assert isinstance(error, RegistrationError)
        assert error.kind == kind
        assert str(error) == error.message

    def test_custom_message(self) -> None:
        assert StepOutOfOrder("Profile is already complete").message == "Profile is already complete"
        assert StepOutOfOrder().message == "This registration step is not available"

    def test_password_errors_are_field_scoped(self) -> None:
        assert PasswordMismatch().fields == {"confirmPassword": ["Passwords don't match"]}
        assert WeakPassword(["too short"]).fields == {"password": ["too short"]}

    def test_otp_messages_do_not_mention_accounts(self) -> None:
        for error in (InvalidOrExpiredOtp(), InvalidOtp()):
            assert "account" not in error.message.lower()
            assert "exist" not in error.message.lower()


class TestDomainPurity:
    """Domain modules import only the standard library and their own ports."""

    @pytest.mark.parametrize("module", sorted(DOMAIN_DIR.glob("*.py")), ids=lambda p: p.name)
    def test_no_framework_imports(self, module: Path) -> None:
        source = module.read_text()
        imported = set(re.findall(r"^\s*(?:from|import)\s+([A-Za-z_][\w]*)", source, re.MULTILINE))
        assert not imported & set(FORBIDDEN_IMPORTS), f"{module.name} imports {imported}"
