"""
Email Service - SMTP delivery of rendered templates.

Sending is skipped (and logged) when EMAIL_HOST is not configured, so local
development and tests never need a mail server.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Any, Dict, Optional

from markupsafe import escape

from app.core.config import get_settings
from app.services import email_templates

logger = logging.getLogger(__name__)


def _smtp_ready() -> bool:
    return get_settings().email_configured


def _smtp_login_if_needed(server: smtplib.SMTP) -> None:
    settings = get_settings()
    if settings.email_user and settings.email_password:
        server.login(settings.email_user, settings.email_password)


def _send_message(msg: EmailMessage) -> None:
    settings = get_settings()
    context = ssl.create_default_context()
    if settings.email_secure:
        with smtplib.SMTP_SSL(settings.email_host, settings.email_port, context=context, timeout=15) as server:
            _smtp_login_if_needed(server)
            server.send_message(msg)
        return

    with smtplib.SMTP(settings.email_host, settings.email_port, timeout=15) as server:
        server.ehlo()
        if server.has_extn("starttls"):
            server.starttls(context=context)
            server.ehlo()
        _smtp_login_if_needed(server)
        server.send_message(msg)


def wrap_html(inner_html: str) -> str:
    """Place a rendered body inside the branded email layout."""
    settings = get_settings()
    app_name = escape(settings.app_name)
    origin = escape(settings.cors_origins[0] if settings.cors_origins else "")
    support = escape(settings.support_email)
    body = inner_html
    if body.startswith("<!doctype html><html><body>"):
        body = body[len("<!doctype html><html><body>"):-len("</body></html>")]
    return (
        "<!doctype html><html><body style=\"margin:0;background:#f4f5f7;font-family:Arial,sans-serif;\">"
        "<table role=\"presentation\" width=\"100%\" cellpadding=\"0\" cellspacing=\"0\"><tr><td align=\"center\">"
        "<table role=\"presentation\" width=\"600\" style=\"background:#ffffff;margin:24px 0;border-radius:6px;\">"
        f"<tr><td style=\"padding:20px 24px;border-bottom:1px solid #e5e7eb;font-size:18px;font-weight:bold;\">"
        f"<a href=\"{origin}\" style=\"color:#111827;text-decoration:none;\">{app_name}</a></td></tr>"
        f"<tr><td style=\"padding:24px;color:#111827;font-size:14px;line-height:1.6;\">{body}</td></tr>"
        f"<tr><td style=\"padding:16px 24px;color:#6b7280;font-size:12px;\">Need help? Contact {support}</td></tr>"
        "</table></td></tr></table></body></html>"
    )


def send_email(to: str, subject: str, body_text: str, body_html: Optional[str] = None) -> bool:
    """Send one email. Returns False when SMTP is not configured."""
    if not _smtp_ready():
        logger.info("Email is not configured; skipping '%s' to %s", subject, to)
        return False

    settings = get_settings()
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.email_from or settings.email_user
    msg["To"] = to
    msg.set_content(body_text)
    if body_html:
        msg.add_alternative(body_html, subtype="html")

    _send_message(msg)
    logger.info("Email '%s' sent to %s", subject, to)
    return True


def send_template_email(template_key: str, to: str, context: Dict[str, Any]) -> bool:
    """Render a stored template and send it."""
    subject, body_text, body_html = email_templates.render_template(template_key, context)
    return send_email(to, subject, body_text, wrap_html(body_html))
