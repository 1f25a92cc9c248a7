"""
TASKTRACK - Mail Sender

Outbound email for verification links and task assignment notices.
"""

import asyncio
import html
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from tasktrack.config import settings
from tasktrack.errors import MailDeliveryFailed

logger = logging.getLogger(__name__)


def redact_email(email: str) -> str:
    """Redact an email address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class MailSender(ABC):
    """Abstract mail transport.

    ``send`` returns on success and raises ``MailDeliveryFailed`` otherwise;
    callers on the registration path let that propagate.
    """

    @abstractmethod
    async def send(self, to: str, subject: str, html_body: str) -> None:
        pass


class SmtpMailSender(MailSender):
    """SMTP implementation. Logs instead of sending when no host is configured."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        from_email: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port if port is not None else settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = use_tls if use_tls is not None else settings.SMTP_USE_TLS
        self.from_email = from_email or settings.MAIL_FROM or self.user
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.from_email)

    async def send(self, to: str, subject: str, html_body: str) -> None:
        if not self.is_configured:
            # Dev mode: log the email instead of sending
            logger.info(
                "Mail transport not configured; would send %r to %s: %s",
                subject,
                redact_email(to),
                html_body[:200],
            )
            return

        try:
            await asyncio.to_thread(self._send_sync, to, subject, html_body)
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error(
                "Mail delivery to %s failed (%s): %s",
                redact_email(to),
                type(e).__name__,
                e,
            )
            raise MailDeliveryFailed(reason=str(e)) from e

        logger.info("Mail %r sent to %s", subject, redact_email(to))

    def _send_sync(self, to: str, subject: str, html_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        if self.use_tls:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls(context=context)
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, [to], msg.as_string())
        else:
            with smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout) as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, [to], msg.as_string())


def verification_email(token: str) -> tuple[str, str]:
    """Subject and HTML body for a verification link."""
    url = f"{settings.CLIENT_URL}/verify-email/{token}"
    body = (
        "<h2>Verify your email address</h2>"
        "<p>Click the link below to verify your email. The link expires in one hour.</p>"
        f'<p><a href="{url}">Verify Email</a></p>'
    )
    return "Verify Your Email Address", body


def assignment_email(task_id: str, title: str) -> tuple[str, str]:
    """Subject and HTML body telling an assignee about a new task."""
    url = f"{settings.CLIENT_URL}/todos/{task_id}"
    body = f'<p>You have been assigned a new task: <strong>{html.escape(title)}</strong>.</p><p><a href="{url}">View it here</a></p>'
    return "You have been assigned a new task", body
