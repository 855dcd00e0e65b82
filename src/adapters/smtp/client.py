"""
SMTP mailer adapter - Implements Mailer protocol over smtplib.

Sends multipart (plain text + HTML) messages through a STARTTLS relay.
Delivery errors are reported in the MailResult, never raised.
"""

import logging
import re
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from src.domain.ports import MailResult

logger = logging.getLogger(__name__)


def html_to_text(html: str) -> str:
    """Crude HTML to plain text conversion for the text/plain alternative."""
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    text = re.sub(r"</?(p|h\d)[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"\n\s*\n+", "\n", text)
    return text.strip()


class SmtpMailer:
    """
    Implements Mailer protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    A new connection is opened per message; sends run on the notification
    executor, never on the request path.
    """

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        user: str | None = None,
        password: str | None = None,
        from_email: str = "no-reply@medivault.example",
        from_name: str = "MediVault",
        timeout: float = 10,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._from = formataddr((from_name, from_email))
        self._domain = from_email.rpartition("@")[2] or None
        self._timeout = timeout

    def is_available(self) -> bool:
        return bool(self._host)

    def send(self, to: str, subject: str, html: str) -> MailResult:
        if not self.is_available():
            return MailResult(success=False, error="SMTP host not configured")

        message_id = make_msgid(domain=self._domain)
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._from
        msg["To"] = to
        msg["Message-ID"] = message_id
        msg.set_content(html_to_text(html))
        msg.add_alternative(html, subtype="html")

        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                smtp.starttls(context=context)
                if self._user and self._password:
                    smtp.login(self._user, self._password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP delivery to %s failed: %s", to, e)
            return MailResult(success=False, error=str(e))

        return MailResult(success=True, message_id=message_id)
