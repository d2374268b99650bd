"""Welcome email notifier over SMTP (``aiosmtplib``).

Sending is best-effort: ``send_welcome`` never raises. A missed welcome
email is logged with the recipient and cause and the registration still
completes.

Example:
    >>> notifier = WelcomeNotifier(get_settings())
    >>> await notifier.initialize()   # verifies SMTP credentials
    >>> await notifier.send_welcome(payload)
"""
from __future__ import annotations

import logging
from email.message import EmailMessage

import aiosmtplib

from libs.config import Settings
from libs.metrics import WELCOME_EMAIL_TOTAL
from libs.validation import UserPayload


logger = logging.getLogger(__name__)


def build_welcome_message(payload: UserPayload, sender: str) -> EmailMessage:
    """Render the welcome email (plain text with an HTML alternative)."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = str(payload.email)
    message["Subject"] = f"Welcome, {payload.name}!"
    message.set_content(
        f"Hello {payload.name},\n\n"
        "Your registration has been completed successfully!\n\n"
        "Best regards,\nThe Team."
    )
    message.add_alternative(
        f"<p>Hello <b>{payload.name}</b>,</p>"
        "<p>Your registration has been completed successfully!</p>"
        "<p>Thank you for joining us.</p>"
        "<p>Best regards,<br>The Team.</p>",
        subtype="html",
    )
    return message


class WelcomeNotifier:
    """Sends a templated welcome email once a user has been persisted.

    Properties:
    - `is_ready`: True once ``initialize()`` verified the SMTP credentials
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def sender(self) -> str:
        return f'"{self._settings.smtp_sender_name}" <{self._settings.smtp_username}>'

    async def initialize(self) -> bool:
        """Verify SMTP credentials by logging in once.

        Missing credentials leave the notifier disabled with a warning;
        a failed login is logged as an error. Never raises.
        """
        self._ready = False
        if not self._settings.email_configured:
            logger.warning("SMTP_USERNAME or SMTP_PASSWORD not set; welcome emails are disabled")
            return False

        client = aiosmtplib.SMTP(
            hostname=self._settings.smtp_host,
            port=self._settings.smtp_port,
            start_tls=self._settings.smtp_start_tls,
            username=self._settings.smtp_username,
            password=self._settings.smtp_password,
        )
        try:
            await client.connect()
            await client.quit()
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not connect to SMTP server %s: %s", self._settings.smtp_host, exc)
            return False

        self._ready = True
        logger.info("SMTP server %s verified; welcome emails enabled", self._settings.smtp_host)
        return True

    async def send_welcome(self, payload: UserPayload) -> None:
        """Send the welcome email to ``payload.email``; failures are logged and swallowed."""
        if not self._ready:
            logger.error("Email service not initialized; cannot send welcome email to %s", payload.email)
            WELCOME_EMAIL_TOTAL.labels(result="disabled").inc()
            return

        message = build_welcome_message(payload, self.sender)
        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.smtp_host,
                port=self._settings.smtp_port,
                start_tls=self._settings.smtp_start_tls,
                username=self._settings.smtp_username,
                password=self._settings.smtp_password,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to send welcome email to %s: %s", payload.email, exc)
            WELCOME_EMAIL_TOTAL.labels(result="failed").inc()
            return

        logger.info("Welcome email sent to %s", payload.email)
        WELCOME_EMAIL_TOTAL.labels(result="sent").inc()
