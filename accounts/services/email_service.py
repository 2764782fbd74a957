"""Service for sending account emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from accounts.domain.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending verification and password reset emails via SMTP."""

    def __init__(
        self,
        base_url: str,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "Reelhouse",
        verification_exp_hours: int = 24,
        reset_exp_minutes: int = 60,
    ):
        self.base_url = base_url.rstrip("/")
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port or 587
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_email = from_email or ""
        self.from_name = from_name
        self.verification_exp_hours = verification_exp_hours
        self.reset_exp_minutes = reset_exp_minutes
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send_verification_email(self, to_email: str, token: str) -> None:
        """
        Send email verification email.

        Args:
            to_email: Recipient email
            token: Verification token

        Raises:
            EmailDeliveryError: If the SMTP server could not accept the message
        """
        verification_url = f"{self.base_url}/auth/verify-email?token={token}"

        if not self.enabled:
            # Development mode: no SMTP configured
            logger.info("Verification URL for %s: %s", to_email, verification_url)
            return

        subject = "Confirm your email - Reelhouse"
        html_body = self._render_html(
            heading="Welcome to Reelhouse!",
            intro="Thanks for signing up. Confirm your email address to activate your account and start watching.",
            action_url=verification_url,
            action_label="Verify email",
            footer=f"This link expires in {self.verification_exp_hours} hours. "
            "If you did not create a Reelhouse account, you can ignore this email.",
        )
        text_body = f"""
        Reelhouse - Email verification

        Welcome to Reelhouse!

        To activate your account, open the link below:
        {verification_url}

        This link expires in {self.verification_exp_hours} hours.

        If you did not create a Reelhouse account, you can ignore this email.
        """

        self._send_email(to_email, subject, html_body, text_body)

    def send_password_reset_email(self, to_email: str, token: str) -> None:
        """
        Send password reset email.

        Args:
            to_email: Recipient email
            token: Password reset token

        Raises:
            EmailDeliveryError: If the SMTP server could not accept the message
        """
        reset_url = f"{self.base_url}/auth/reset-password?token={token}"

        if not self.enabled:
            logger.info("Password reset URL for %s: %s", to_email, reset_url)
            return

        subject = "Reset your password - Reelhouse"
        html_body = self._render_html(
            heading="Password reset requested",
            intro="We received a request to reset the password of your Reelhouse account.",
            action_url=reset_url,
            action_label="Choose a new password",
            footer=f"This link expires in {self.reset_exp_minutes} minutes and can be used once. "
            "If you did not request a reset, you can ignore this email.",
        )
        text_body = f"""
        Reelhouse - Password reset

        To choose a new password, open the link below:
        {reset_url}

        This link expires in {self.reset_exp_minutes} minutes and can be used once.

        If you did not request a reset, you can ignore this email.
        """

        self._send_email(to_email, subject, html_body, text_body)

    def _render_html(self, heading: str, intro: str, action_url: str, action_label: str, footer: str) -> str:
        return f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <div style="background-color: #111827; padding: 30px; border-radius: 10px; text-align: center;">
                    <h1 style="color: #f87171; margin: 0;">Reelhouse</h1>
                </div>

                <div style="padding: 30px 0;">
                    <h2 style="color: #1f2937; margin-bottom: 20px;">{heading}</h2>

                    <p style="color: #4b5563; line-height: 1.6; margin-bottom: 20px;">{intro}</p>

                    <div style="text-align: center; margin: 30px 0;">
                        <a href="{action_url}"
                           style="background-color: #dc2626; color: white; padding: 15px 30px;
                                  text-decoration: none; border-radius: 5px; display: inline-block;
                                  font-weight: bold;">
                            {action_label}
                        </a>
                    </div>

                    <p style="color: #6b7280; font-size: 14px; margin-top: 30px;">{footer}</p>
                </div>
            </body>
        </html>
        """

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        """
        Send an email via SMTP.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_body: HTML body
            text_body: Plain text body
        """
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", to_email, exc)
            raise EmailDeliveryError(f"Could not deliver email to {to_email}") from exc
