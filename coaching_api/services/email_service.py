"""
Email service - handles sending emails.
Currently supports: Mock (development) and SMTP (production ready).
"""
import logging
import smtplib
from email.mime.application import MIMEApplication
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List, Tuple
from abc import ABC, abstractmethod

from fastapi.concurrency import run_in_threadpool

from coaching_api.config import settings

logger = logging.getLogger(__name__)

# (filename, content, mime subtype), e.g. ("invoice.pdf", b"...", "pdf")
Attachment = Tuple[str, bytes, str]


class EmailService(ABC):
    """Base email service interface."""

    @abstractmethod
    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None
    ) -> bool:
        """Send an email."""
        pass

    async def send_password_reset_email(self, to: str, token: str, base_url: str) -> bool:
        """Send password reset email."""
        reset_link = f"{base_url}/auth/reset-password?token={token}&email={to}"
        minutes = settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES

        subject = "Reset your password"
        body = f"""
Hello,

You requested to reset your password. Click the link below:

{reset_link}

This link expires in {minutes} minutes.

If you didn't request this, please ignore this email.
        """

        html = f"""
        <html>
        <body>
            <h2>Password Reset Request</h2>
            <p>Click the button below to reset your password:</p>
            <p>
                <a href="{reset_link}"
                   style="background-color: #2196F3; color: white; padding: 14px 25px;
                          text-decoration: none; display: inline-block; border-radius: 4px;">
                    Reset Password
                </a>
            </p>
            <p>Or copy this link: {reset_link}</p>
            <p><small>This link expires in {minutes} minutes.</small></p>
        </body>
        </html>
        """

        return await self.send_email(to, subject, body, html)

    async def send_invoice_email(
        self,
        to: str,
        coach_name: str,
        invoice_number: str,
        total: str,
        pdf_bytes: bytes
    ) -> bool:
        """Send an invoice with its PDF attached."""
        subject = f"Invoice {invoice_number}"
        body = f"""
Hello {coach_name},

Please find attached invoice {invoice_number} for a total of {total}.
        """
        return await self.send_email(
            to,
            subject,
            body,
            attachments=[(f"invoice-{invoice_number}.pdf", pdf_bytes, "pdf")]
        )


class MockEmailService(EmailService):
    """
    Mock email service for development and tests.
    Logs emails instead of sending them.
    """

    def __init__(self):
        self.sent_emails: list = []

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None
    ) -> bool:
        """Mock send - logs and stores for debugging."""
        self.sent_emails.append({
            "to": to,
            "subject": subject,
            "body": body,
            "attachments": [name for name, _, _ in attachments or []]
        })
        logger.info(f"Mock email to {to}: {subject}")
        return True

    def get_last_email(self) -> Optional[dict]:
        """Get the last sent email (for testing)."""
        return self.sent_emails[-1] if self.sent_emails else None


class SMTPEmailService(EmailService):
    """
    SMTP email service for production.
    Configure with environment variables:
    - SMTP_HOST
    - SMTP_PORT
    - SMTP_USER
    - SMTP_PASSWORD
    - EMAIL_FROM
    """

    def __init__(self):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM

    def _build_message(self, to, subject, body, html, attachments) -> MIMEMultipart:
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = self.from_email
        msg['To'] = to

        alternative = MIMEMultipart('alternative')
        alternative.attach(MIMEText(body, 'plain'))
        if html:
            alternative.attach(MIMEText(html, 'html'))
        msg.attach(alternative)

        for filename, content, subtype in attachments or []:
            part = MIMEApplication(content, _subtype=subtype)
            part.add_header('Content-Disposition', 'attachment', filename=filename)
            msg.attach(part)
        return msg

    def _deliver(self, to: str, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(self.from_email, to, msg.as_string())

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None
    ) -> bool:
        """Send email via SMTP."""
        msg = self._build_message(to, subject, body, html, attachments)
        try:
            await run_in_threadpool(self._deliver, to, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False
        logger.info(f"Email sent to {to}: {subject}")
        return True


# =============================================================================
# EMAIL SERVICE SINGLETON
# =============================================================================

_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get the email service instance."""
    global _email_service

    if _email_service is None:
        if settings.SMTP_HOST:
            logger.info("Using SMTP email service")
            _email_service = SMTPEmailService()
        else:
            logger.info("Using mock email service (emails are logged, not sent)")
            _email_service = MockEmailService()

    return _email_service


def set_email_service(service: EmailService) -> None:
    """Set custom email service (for testing)."""
    global _email_service
    _email_service = service
