"""Email integration utilities for sending emails."""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional, List
import logging

from core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        """
        Initialize email service.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_email: Default sender email
            from_name: Default sender name
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.smtp_from_email or self.smtp_user
        self.from_name = from_name or settings.smtp_from_name

    def send_email(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html: bool = False,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to_email: Recipient email address(es)
            subject: Email subject
            body: Email body
            html: Whether body is HTML
            reply_to: Reply-to email address

        Returns:
            True if email sent successfully
        """
        try:
            msg = MIMEMultipart()
            msg['From'] = f"{self.from_name} <{self.from_email}>"

            if isinstance(to_email, list):
                msg['To'] = ", ".join(to_email)
                recipients = to_email
            else:
                msg['To'] = to_email
                recipients = [to_email]

            msg['Subject'] = subject

            if reply_to:
                msg['Reply-To'] = reply_to

            msg.attach(MIMEText(body, 'html' if html else 'plain'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=recipients)

            logger.info(f"Email sent to {len(recipients)} recipient(s)")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return False


# Pre-configured email templates
class EmailTemplates:
    """Pre-configured email templates."""

    @staticmethod
    def application_status_update(
        applicant_name: Optional[str],
        job_title: str,
        company_name: str,
        status: str,
    ) -> dict:
        """Status change notice sent to an applicant."""
        name = escape(applicant_name or "Applicant")
        title = escape(job_title)
        company = escape(company_name)
        return {
            'subject': f'Update on your application for {job_title}',
            'body': f"""
                <div style="font-family: Arial, sans-serif;">
                    <h2>Application Status Update</h2>
                    <p>Dear {name},</p>
                    <p>Your application for the position of <strong>{title}</strong>
                    at <strong>{company}</strong> has been updated.</p>
                    <p><strong>New Status:</strong>
                    <span style="color: #2563eb;">{escape(status.capitalize())}</span></p>
                    <p>If you have any questions, feel free to reply to this email.</p>
                    <br/>
                    <p>Best regards,<br/>{company} Recruitment Team</p>
                </div>
            """,
            'html': True
        }


# Global email service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create global email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
