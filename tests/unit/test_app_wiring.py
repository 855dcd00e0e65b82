"""
Unit tests for application wiring.

Tests collaborator construction from settings and the system clock.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timezone

import pytest
from pydantic import ValidationError

from src.adapters.clock import SystemClock
from src.adapters.smtp.client import SmtpMailer
from src.adapters.smtp.console import ConsoleMailer, ConsoleSmsSender
from src.api.main import build_dispatcher, build_mailer
from src.config.settings import DEFAULT_JWT_SECRET, Settings

SECRET = "wiring-test-signing-secret-0123456789"


class TestBuildMailer:
    def test_console_backend_by_default(self) -> None:
        assert isinstance(build_mailer(Settings(mail_backend="console")), ConsoleMailer)

    def test_smtp_backend(self) -> None:
        mailer = build_mailer(
            Settings(mail_backend="smtp", smtp_host="smtp.example.com", jwt_secret=SECRET)
        )
        assert isinstance(mailer, SmtpMailer)
        assert mailer.is_available() is True

    def test_smtp_backend_without_host_is_unavailable(self) -> None:
        mailer = build_mailer(Settings(mail_backend="smtp", smtp_host=None, jwt_secret=SECRET))
        assert mailer.is_available() is False


class TestBuildDispatcher:
    def test_dispatcher_uses_thread_pool(self) -> None:
        dispatcher = build_dispatcher(Settings(otp_ttl_seconds=300, notification_workers=3))
        try:
            assert isinstance(dispatcher.executor, ThreadPoolExecutor)
            assert isinstance(dispatcher.sms_sender, ConsoleSmsSender)
            assert dispatcher.otp_ttl_minutes == 5
        finally:
            dispatcher.shutdown()


class TestSystemClock:
    def test_now_is_utc_aware(self) -> None:
        assert SystemClock().now().tzinfo is timezone.utc


class TestSettings:
    def test_smtp_with_placeholder_secret_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="JWT_SECRET"):
            Settings(
                mail_backend="smtp", smtp_host="smtp.example.com", jwt_secret=DEFAULT_JWT_SECRET
            )

    def test_console_backend_allows_placeholder_secret(self) -> None:
        assert Settings(mail_backend="console").mail_backend == "console"
