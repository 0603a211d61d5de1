"""
Authentication utility functions for verification emails and form parsing.
"""
import json
import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, List, Optional

from ..config import Settings

# Set up logging
logger = logging.getLogger(__name__)


class MailConfigurationError(Exception):
    """Raised when the SMTP settings are incomplete."""


class Mailer:
    """
    Sends email over SMTP with STARTTLS.

    One connection per message and a single attempt; callers decide what a
    failure means.
    """

    def __init__(self, settings: Settings):
        self.server = settings.mail_server
        self.port = settings.mail_port
        self.username = settings.mail_username
        self.password = settings.mail_password
        self.sender = settings.mail_from or settings.mail_username
        self.starttls = settings.mail_starttls
        self.timeout = settings.smtp_timeout

    def is_configured(self) -> bool:
        """
        Validates that all required email configuration variables are set.

        Returns:
            bool: True if all required config is present, False otherwise
        """
        return all([self.server, self.username, self.password, self.sender])

    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        """
        Send one message.

        Raises:
            MailConfigurationError: If SMTP settings are missing
            smtplib.SMTPException, OSError: On delivery failure
        """
        if not self.is_configured():
            raise MailConfigurationError("Email configuration is incomplete")

        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(text, "plain"))
        if html:
            msg.attach(MIMEText(html, "html"))

        logger.info(f"Connecting to SMTP server {self.server}:{self.port}...")
        with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as server:
            server.ehlo()
            if self.starttls:
                server.starttls(context=ssl.create_default_context())
                server.ehlo()
            server.login(self.username, self.password)
            server.send_message(msg)
        logger.info(f"Email sent successfully to {to}")


def build_verification_url(client_url: str, raw_token: str) -> str:
    return f"{client_url.rstrip('/')}/verify-email/{raw_token}"


def send_verification_email(mailer: Mailer, email: str, verification_url: str, is_doctor: bool = False) -> bool:
    """
    Send the email verification link.

    Best effort: the account is already committed when this runs, so any
    failure is logged and reported through the return value only.

    Args:
        mailer: Mail collaborator
        email: Recipient address
        verification_url: Link containing the raw verification token
        is_doctor: Whether to mention the credential review

    Returns:
        bool: True if the message was handed to the SMTP server
    """
    subject = "Doctor Verification - MediMantra" if is_doctor else "Email Verification - MediMantra"
    text = f"Please verify your email by clicking the link: {verification_url}"
    if is_doctor:
        text += "\n\nYour account will be fully activated after admin verification of your medical credentials."

    html = f"""
    <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            <h2>MediMantra</h2>
            <p>Please verify your email address by clicking the link below:</p>
            <p><a href="{verification_url}">Verify email</a></p>
            <p>This link expires in 24 hours.</p>
            <p style="font-size: 12px; color: #777;">&copy; {datetime.now().year} MediMantra</p>
        </body>
    </html>
    """

    try:
        mailer.send(email, subject, text, html)
        logger.info(f"Verification email sent to {email}")
        return True
    except (MailConfigurationError, smtplib.SMTPException, OSError) as e:
        logger.error(f"Email sending failed for {email}: {str(e)}")
        return False


def build_password_reset_url(client_url: str, raw_token: str) -> str:
    return f"{client_url.rstrip('/')}/reset-password/{raw_token}"


def send_password_reset_email(mailer: Mailer, email: str, reset_url: str, expire_minutes: int = 30) -> bool:
    """
    Send the password reset link. Failures are logged and reported through
    the return value, like the verification email.

    Returns:
        bool: True if the message was handed to the SMTP server
    """
    subject = "Password Reset - MediMantra"
    text = (
        f"You requested a password reset. Use this link to choose a new password: {reset_url}\n\n"
        f"The link expires in {expire_minutes} minutes. If you did not request this, ignore this email."
    )

    html = f"""
    <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            <h2>MediMantra</h2>
            <p>You requested a password reset. Click the link below to choose a new password:</p>
            <p><a href="{reset_url}">Reset password</a></p>
            <p>This link expires in {expire_minutes} minutes. If you did not request this, you can ignore this email.</p>
            <p style="font-size: 12px; color: #777;">&copy; {datetime.now().year} MediMantra</p>
        </body>
    </html>
    """

    try:
        mailer.send(email, subject, text, html)
        logger.info(f"Password reset email sent to {email}")
        return True
    except (MailConfigurationError, smtplib.SMTPException, OSError) as e:
        logger.error(f"Password reset email failed for {email}: {str(e)}")
        return False


def coerce_form_field(values: Optional[List[str]]) -> Any:
    """
    Collapse a repeatable multipart field into the shape the client meant.

    No value -> None, one value -> that string, several -> list of strings.
    A value holding a JSON array or object is decoded, so structured input
    can travel through a multipart form.
    """
    if not values:
        return None
    decoded = [_maybe_json(value) for value in values]
    return decoded[0] if len(decoded) == 1 else decoded


def coerce_form_value(value: Optional[str]) -> Any:
    if value is None:
        return None
    return _maybe_json(value)


def _maybe_json(value: str) -> Any:
    stripped = value.strip()
    if stripped[:1] in ("[", "{"):
        try:
            return json.loads(stripped)
        except ValueError:
            return value
    return value
