"""
Console notification adapters - Implement Mailer and SmsSender protocols.

This module provides console-based implementations of the domain's
notification ports, logging messages to stdout for demo purposes.
"""

import logging
import uuid

from src.adapters.smtp.client import html_to_text
from src.domain.ports import MailResult, OtpPurpose

logger = logging.getLogger(__name__)


class ConsoleMailer:
    """
    Implements Mailer protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints emails (including codes) to stdout.
    """

    def is_available(self) -> bool:
        return True

    def send(self, to: str, subject: str, html: str) -> MailResult:
        """
        Log the message to console (simulates email delivery).

        The body is logged at INFO level to be visible in docker-compose logs.
        """
        message_id = f"<{uuid.uuid4()}@console>"
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, html_to_text(html))
        return MailResult(success=True, message_id=message_id)


class ConsoleSmsSender:
    """
    Implements SmsSender protocol via console logging.

    Stand-in for SMS / WhatsApp delivery, which is not wired to a provider.
    """

    def send_code(self, phone: str, code: str, purpose: OtpPurpose) -> None:
        logger.info("[SMS] Phone: %s Purpose: %s Code: %s", phone, purpose.value, code)
