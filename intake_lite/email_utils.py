"""
Email Utilities
===============

Team notifications (lawyer review requests) over SMTP.
When SMTP is not configured, emails are logged instead of sent.
"""

import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional

from .config import get_settings

logger = logging.getLogger(__name__)


def is_email_configured() -> bool:
    """Check if SMTP is properly configured."""
    settings = get_settings()
    return bool(settings.smtp_host and settings.smtp_user and settings.smtp_password)


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None
) -> bool:
    """
    Send an email.

    Returns True if sent successfully, False otherwise.
    In development mode (SMTP not configured), logs the email instead.
    """
    settings = get_settings()

    if not is_email_configured():
        logger.info(f"[DEV MODE] Email would be sent to {to_email}: {subject}")
        logger.debug(f"[DEV MODE] Email body: {text_body or html_body[:200]}")
        return True

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email

    if text_body:
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.capability_timeout) as server:
            if settings.smtp_use_tls:
                server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.smtp_from, to_email, msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False

    logger.info(f"Email sent successfully to {to_email}")
    return True


def send_lawyer_review_email(
    to_email: str,
    team_name: str,
    matter_type: str,
    urgency: Optional[str] = None,
    complexity: Optional[str] = None,
    session_id: Optional[str] = None,
) -> bool:
    """
    Tell a team that a prospective client asked for lawyer review.

    Only the matter classification goes in the email; contact details
    stay in the intake record.
    """
    rows = [
        ("Matter type", matter_type),
        ("Urgency", urgency or "not specified"),
        ("Complexity", complexity or "not specified"),
        ("Session", session_id or "n/a"),
    ]

    html_rows = "".join(
        f"<tr><td style=\"padding:4px 12px 4px 0\"><strong>{escape(label)}</strong></td>"
        f"<td>{escape(value)}</td></tr>"
        for label, value in rows
    )
    html_body = f"""
    <!DOCTYPE html>
    <html lang="en">
    <head><meta charset="UTF-8"></head>
    <body style="font-family: Arial, sans-serif;">
        <h2>Lawyer review requested</h2>
        <p>A prospective client of {escape(team_name)} asked for a lawyer to review their case.</p>
        <table>{html_rows}</table>
        <p>Open the intake dashboard to see the full conversation and contact details.</p>
    </body>
    </html>
    """

    text_body = "Lawyer review requested\n\n" + "\n".join(f"{label}: {value}" for label, value in rows)

    return send_email(
        to_email=to_email,
        subject=f"Lawyer review requested - {matter_type}",
        html_body=html_body,
        text_body=text_body,
    )
