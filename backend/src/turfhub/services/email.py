"""Transactional email: verification and password reset links.

Delivery goes through an ``EmailBackend`` chosen by ``settings.email_backend``.
Backends never raise on delivery problems; they log and return ``False`` so
the account flows can decide what the caller sees.
"""

import logging
from abc import ABC, abstractmethod
from email.message import EmailMessage
from html import escape

import aiosmtplib
import httpx

from turfhub.config import settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailBackend(ABC):
    """Delivers one rendered message."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Deliver a message; return whether it was accepted."""


class ConsoleEmailBackend(EmailBackend):
    """Writes messages to the log instead of delivering them (development)."""

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        logger.info(f"Email to {to} | {subject}\n{text or html}")
        return True


class SMTPEmailBackend(EmailBackend):
    """Delivers through an SMTP relay with aiosmtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    def build_message(self, to: str, subject: str, html: str, text: str | None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text or "Open this email in an HTML capable client.")
        message.add_alternative(html, subtype="html")
        return message

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        try:
            await aiosmtplib.send(
                self.build_message(to, subject, html, text),
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery to {to} via {self.host}:{self.port} failed: {e!r}")
            return False

        logger.info(f"Email '{subject}' sent via SMTP to {to}")
        return True


class ResendEmailBackend(EmailBackend):
    """Delivers through the Resend HTTP API."""

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        payload = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text

        async with httpx.AsyncClient(timeout=30.0) as client:
            try:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"Resend rejected email to {to}: {e.response.status_code} {e.response.text}"
                )
                return False
            except httpx.HTTPError as e:
                logger.error(f"Resend request for {to} failed: {e!r}")
                return False

        logger.info(f"Email '{subject}' sent via Resend to {to}")
        return True


def get_email_backend() -> EmailBackend:
    """Build the backend named by ``settings.email_backend``."""
    match settings.email_backend:
        case "console":
            return ConsoleEmailBackend()
        case "smtp":
            return SMTPEmailBackend(
                host=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                use_tls=settings.smtp_use_tls,
                from_address=settings.email_from,
            )
        case "resend":
            return ResendEmailBackend(
                api_key=settings.resend_api_key,
                from_address=settings.email_from,
            )
    raise ValueError(f"Unknown email backend: {settings.email_backend}")


def _render_action_email(title: str, greeting: str, body: str, action: str, link: str) -> str:
    """Render the HTML body. Every value is escaped; names come from users."""
    title, greeting, body, action, link = (
        escape(value) for value in (title, greeting, body, action, link)
    )
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="text-align: center; margin-bottom: 30px;">
        <h1 style="color: #14532d; margin: 0;">TurfHub</h1>
    </div>

    <div style="background: #f9fafb; border-radius: 8px; padding: 30px; margin-bottom: 30px;">
        <h2 style="margin-top: 0; color: #1a1a1a;">{title}</h2>
        <p>{greeting}</p>
        <p>{body}</p>

        <div style="text-align: center; margin: 30px 0;">
            <a href="{link}"
               style="background: #16a34a; color: white; padding: 12px 30px; border-radius: 6px; text-decoration: none; font-weight: 500; display: inline-block;">
                {action}
            </a>
        </div>

        <p style="color: #666; font-size: 14px;">
            If you didn't request this email, you can safely ignore it.
        </p>
    </div>

    <div style="text-align: center; color: #666; font-size: 12px;">
        <p>
            If the button doesn't work, copy and paste this link into your browser:<br>
            <a href="{link}" style="color: #16a34a; word-break: break-all;">{link}</a>
        </p>
    </div>
</body>
</html>
"""


class EmailService:
    """High-level email service for sending application emails."""

    def __init__(self, backend: EmailBackend | None = None):
        self._backend = backend

    @property
    def backend(self) -> EmailBackend:
        """Lazy-load the backend."""
        if self._backend is None:
            self._backend = get_email_backend()
        return self._backend

    async def send_verification_email(self, to: str, first_name: str, link: str) -> bool:
        """Send the email address verification link."""
        hours = settings.verification_token_expiration_hours
        subject = "Verify your TurfHub email address"
        greeting = f"Hi {first_name},"
        body = (
            "Thanks for signing up. Please confirm your email address. "
            f"This link will expire in {hours} hours."
        )

        html = _render_action_email("Verify your email", greeting, body, "Verify email", link)
        text = f"""
Verify your email
=================

{greeting}

{body}

{link}

If you didn't create an account, you can safely ignore this email.
"""
        return await self.backend.send(to=to, subject=subject, html=html, text=text)

    async def send_password_reset_email(self, to: str, first_name: str, link: str) -> bool:
        """Send the password reset link."""
        minutes = settings.password_reset_expiration_minutes
        subject = "Reset your TurfHub password"
        greeting = f"Hi {first_name},"
        body = (
            "We received a request to reset your password. "
            f"This link will expire in {minutes} minutes and can only be used once."
        )

        html = _render_action_email("Reset your password", greeting, body, "Reset password", link)
        text = f"""
Reset your password
===================

{greeting}

{body}

{link}

If you didn't request a password reset, you can safely ignore this email.
"""
        return await self.backend.send(to=to, subject=subject, html=html, text=text)


# Global email service instance
email_service = EmailService()
