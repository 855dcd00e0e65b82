"""
Notification dispatch - fire-and-forget OTP and welcome messages.

Account progression must not be gated on third-party delivery, so every
send is handed to a background executor and the caller gets the Future
back without waiting on it. Failures are logged from the executor's side
and never propagate to the request path.
"""

import logging
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from html import escape

from .ports import ContactType, Mailer, MailResult, OtpPurpose, SmsSender

logger = logging.getLogger(__name__)

PRODUCT_NAME = "MediVault"

OTP_SUBJECTS = {
    OtpPurpose.REGISTRATION: f"Verify Your {PRODUCT_NAME} Account",
    OtpPurpose.LOGIN: "Your Login OTP",
    OtpPurpose.PASSWORD_RESET: "Reset Your Password",
}

_PURPOSE_TEXT = {
    OtpPurpose.REGISTRATION: "account registration",
    OtpPurpose.LOGIN: "login",
    OtpPurpose.PASSWORD_RESET: "password reset",
}

WELCOME_SUBJECT = f"Welcome to {PRODUCT_NAME} Health Wallet!"


def render_otp_email(code: str, purpose: OtpPurpose, ttl_minutes: int) -> str:
    return (
        "<!DOCTYPE html><html><body>"
        f"<h2>{PRODUCT_NAME} OTP Verification</h2>"
        f"<p>Use the following code to complete your {_PURPOSE_TEXT[purpose]}:</p>"
        f'<p style="font-size:32px;font-weight:bold;letter-spacing:10px">{escape(code)}</p>'
        f"<p>This code expires in {ttl_minutes} minutes. Never share it with anyone.</p>"
        "</body></html>"
    )


def render_welcome_email(name: str) -> str:
    return (
        "<!DOCTYPE html><html><body>"
        f"<h2>Welcome to {PRODUCT_NAME}, {escape(name)}!</h2>"
        "<p>Your account is verified. Finish setting your password and profile "
        "to start storing your health records.</p>"
        "</body></html>"
    )


@dataclass
class NotificationDispatcher:
    """
    Sends notifications on a background executor.

    The executor is owned by the caller (created and shut down in the
    application lifespan) so tests can substitute a synchronous one.
    """

    mailer: Mailer
    sms_sender: SmsSender
    executor: Executor
    otp_ttl_minutes: int = 10

    def email_available(self) -> bool:
        return self.mailer.is_available()

    def send_otp(
        self, contact: str, contact_type: ContactType, code: str, purpose: OtpPurpose
    ) -> Future:
        """Queue delivery of a code; returns without waiting for it."""
        if contact_type is ContactType.EMAIL:
            html = render_otp_email(code, purpose, self.otp_ttl_minutes)
            return self._submit(
                f"otp:{purpose.value}", contact, self._send_mail, contact, OTP_SUBJECTS[purpose], html
            )
        return self._submit(
            f"otp:{purpose.value}", contact, self.sms_sender.send_code, contact, code, purpose
        )

    def send_welcome(self, contact: str, name: str) -> Future:
        html = render_welcome_email(name)
        return self._submit("welcome", contact, self._send_mail, contact, WELCOME_SUBJECT, html)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    def _send_mail(self, to: str, subject: str, html: str) -> MailResult:
        result = self.mailer.send(to, subject, html)
        if not result.success:
            logger.warning("Email to %s failed (%s): %s", to, subject, result.error)
        else:
            logger.info("Email sent to %s: %s", to, result.message_id)
        return result

    def _submit(self, kind: str, recipient: str, fn, *args) -> Future:
        try:
            future = self.executor.submit(fn, *args)
        except RuntimeError as e:
            # Executor already shut down
            logger.error("Notification %s to %s not queued", kind, recipient, exc_info=e)
            future = Future()
            future.set_exception(e)
            return future

        def _log_failure(done: Future) -> None:
            if done.cancelled():
                logger.warning("Notification %s to %s was cancelled", kind, recipient)
                return
            exc = done.exception()
            if exc is not None:
                logger.error(
                    "Notification %s to %s failed", kind, recipient, exc_info=exc
                )

        future.add_done_callback(_log_failure)
        return future
