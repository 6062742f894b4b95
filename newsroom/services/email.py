"""
Email channel.

Delivery is best effort: one attempt per recipient, failures are raised as
ChannelDeliveryError for the dispatcher to log. Nothing is queued or retried.
"""
from email.message import EmailMessage
from html import escape
from typing import Any, Dict, Optional, Tuple

import aiosmtplib
import structlog

from newsroom.core.config import settings
from newsroom.core.exceptions import ChannelDeliveryError

logger = structlog.get_logger()


class EmailSender:
    """Interface for the email channel"""

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        """Send one message. Returns False if the message was skipped."""
        raise NotImplementedError


class NullEmailSender(EmailSender):
    """Used when email is disabled; drops every message"""

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        logger.debug("Email disabled, message dropped", to=to, subject=subject)
        return False


class SmtpEmailSender(EmailSender):
    """Sends mail through an SMTP relay with aiosmtplib"""

    def __init__(
        self,
        hostname: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        start_tls: bool = True,
        timeout: float = 30.0,
        sender: str = "newsroom@localhost",
    ):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.start_tls = start_tls
        self.timeout = timeout
        self.sender = sender

    def build_message(self, to: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html_body, subtype="html")
        return message

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        message = self.build_message(to, subject, html_body)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.start_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise ChannelDeliveryError("email", to, str(e)) from e

        logger.info("Email sent", to=to, subject=subject)
        return True


def get_email_sender() -> EmailSender:
    """Email sender for the current configuration"""
    if not settings.email_configured:
        return NullEmailSender()
    return SmtpEmailSender(
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        start_tls=settings.SMTP_USE_TLS,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
        sender=settings.EMAIL_FROM,
    )


def notification_link(data: Optional[Dict[str, Any]]) -> str:
    base = settings.FRONTEND_URL.rstrip("/")
    if data and data.get("articleId"):
        return f"{base}/articles/{data['articleId']}"
    return f"{base}/notifications"


def render_notification_email(
    recipient_name: str,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Tuple[str, str]:
    """Return (subject, html body) for a notification email"""
    subject = f"[{settings.APP_NAME}] {title}"
    link = notification_link(data)

    html_body = f"""<!DOCTYPE html>
<html>
  <body style="font-family:Arial,sans-serif;color:#222;">
    <h2>{escape(title)}</h2>
    <p>Hello {escape(recipient_name)},</p>
    <p>{escape(message)}</p>
    <p><a href="{escape(link, quote=True)}">View in {escape(settings.APP_NAME)}</a></p>
    <p style="font-size:12px;color:#777;">You received this email because of activity on the editorial platform.</p>
  </body>
</html>
"""
    return subject, html_body
