"""
Send notification copies by email via SMTP (Gmail or any STARTTLS server).
Set SMTP_USER, SMTP_PASSWORD (and optionally EMAIL_FROM) in .env.
"""

from __future__ import annotations

import html
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any, Optional

from resonant.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def _from_address() -> str:
    if settings.EMAIL_FROM:
        return settings.EMAIL_FROM
    if settings.SMTP_USER:
        return f"Resonant <{settings.SMTP_USER}>"
    return "Resonant <noreply@localhost>"


def _action_link(type: str, data: Optional[dict[str, Any]]) -> tuple[str, str] | None:
    """Return (label, url) for the call-to-action button of a notification type."""
    base = settings.CLIENT_URL.rstrip("/")
    if type == "friend_request":
        return "View Friend Requests", f"{base}/friends"
    if type in ("post_like", "post_comment"):
        sender_id = (data or {}).get("senderId")
        return "View Post", f"{base}/profile/{sender_id}"
    if type == "profile_invite":
        return "View Invitation", f"{base}/notifications"
    return None


def _render(to_name: str, title: str, message: str, type: str, data: Optional[dict[str, Any]]) -> tuple[str, str]:
    link = _action_link(type, data)
    text_lines = [title, "", f"Dear {to_name},", "", message, ""]
    if link:
        text_lines += [f"{link[0]}: {link[1]}", ""]
    text_lines += [
        "You can manage your notification preferences in your account settings.",
        "",
        "Best regards,",
        "The Resonant Team",
    ]
    button = ""
    if link:
        button = (
            '<div style="text-align:center;margin:30px 0;">'
            f'<a href="{html.escape(link[1])}" style="background-color:#3b82f6;color:white;'
            'padding:12px 24px;text-decoration:none;border-radius:6px;display:inline-block;">'
            f"{html.escape(link[0])}</a></div>"
        )
    body_html = (
        '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">'
        f'<h2 style="color:#1f2937;">{html.escape(title)}</h2>'
        f"<p>Dear {html.escape(to_name)},</p>"
        f"<p>{html.escape(message)}</p>"
        f"{button}"
        "<p>You can manage your notification preferences in your account settings.</p>"
        "<p>Best regards,<br>The Resonant Team</p>"
        '<hr style="margin:30px 0;border:none;border-top:1px solid #e5e7eb;">'
        '<p style="font-size:12px;color:#6b7280;">This is an automated message. Please do not reply to this email.</p>'
        "</div>"
    )
    return "\n".join(text_lines), body_html


def send_notification_email(
    to_email: str,
    to_name: str,
    title: str,
    message: str,
    type: str,
    data: Optional[dict[str, Any]] = None,
) -> EmailResult:
    """
    Send one notification email. Never raises: failures come back as
    ``EmailResult(success=False, error=...)``.
    """
    to_email = (to_email or "").strip()
    if not to_email:
        return EmailResult(success=False, error="missing recipient")
    if not settings.SMTP_USER or not settings.SMTP_PASSWORD:
        logger.debug("SMTP_USER or SMTP_PASSWORD not set; skipping notification email")
        return EmailResult(success=False, error="smtp not configured")

    text_body, html_body = _render(to_name, title, message, type, data)
    msg = MIMEMultipart("alternative")
    msg["Subject"] = title
    msg["From"] = _from_address()
    msg["To"] = to_email
    msg["Message-ID"] = make_msgid(domain="resonant")
    msg.attach(MIMEText(text_body, "plain"))
    msg.attach(MIMEText(html_body, "html"))
    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as server:
            server.starttls()
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.sendmail(settings.SMTP_USER, [to_email], msg.as_string())
        logger.info(f"Notification email ({type}) sent to {to_email}")
        return EmailResult(success=True, message_id=msg["Message-ID"])
    except Exception as e:
        logger.exception(f"Failed to send notification email to {to_email}: {e}")
        return EmailResult(success=False, error=str(e))
