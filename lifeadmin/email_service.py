"""
Email Service using Resend, or SMTP when Resend is not configured
Notification emails are rendered from MJML templates
"""

import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import resend
from mjml import mjml_to_html

from . import config
from .email_templates import notification_email_template

logger = logging.getLogger(__name__)


class EmailNotConfiguredError(Exception):
    """Raised when neither Resend nor SMTP is configured"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict-like result with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        html = getattr(result, "html", None)
        if html is not None:
            if getattr(result, "errors", None):
                logger.warning(f"MJML compilation warnings: {result.errors}")
            return html
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


def send_via_smtp(to: str, subject: str, html_content: str, from_address: str) -> dict:
    """Send email via the configured SMTP server"""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = to
    msg.attach(MIMEText(html_content, "html"))

    if config.SMTP_PORT == 465:
        context = ssl.create_default_context()
        server = smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, context=context, timeout=30)
    else:
        server = smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30)
        if config.SMTP_USE_TLS:
            server.starttls(context=ssl.create_default_context())

    try:
        if config.SMTP_USERNAME:
            server.login(config.SMTP_USERNAME, config.SMTP_PASSWORD or "")
        server.sendmail(from_address.split("<")[-1].rstrip(">"), [to], msg.as_string())
    finally:
        server.quit()

    logger.info(f"✅ SMTP email sent successfully via {config.SMTP_HOST}")
    return {"id": f"smtp-{datetime.now().timestamp()}"}


async def send_email(to: str, subject: str, mjml_content: str, from_address: Optional[str] = None) -> dict:
    """
    Send an email using Resend, falling back to SMTP when only SMTP is configured

    Returns:
        Send response dict (always carries an ``id``)

    Raises:
        EmailNotConfiguredError: If no email transport is configured
    """
    html_content = compile_mjml_to_html(mjml_content)
    sender = from_address or config.EMAIL_FROM_ADDRESS

    if config.RESEND_API_KEY:
        resend.api_key = config.RESEND_API_KEY
        logger.info(f"📧 Sending email via Resend to: {to}")
        response = resend.Emails.send(
            {"from": sender, "to": [to], "subject": subject, "html": html_content}
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response

    if config.SMTP_HOST:
        logger.info(f"📧 Sending email via SMTP: {config.SMTP_HOST}")
        return send_via_smtp(to, subject, html_content, sender)

    logger.error("❌ No email service configured - RESEND_API_KEY and SMTP_HOST missing")
    raise EmailNotConfiguredError("Email service not configured")


async def send_email_notification(address: str, notification, logo_url: Optional[str] = None) -> dict:
    """
    Mirror a notification to email.

    Never raises: returns {"success": True, "message_id": ...} or
    {"success": False, "error": ...}.
    """
    try:
        mjml_content = notification_email_template(
            title=notification.title,
            message=notification.message,
            notification_type=notification.type,
            payload=notification.payload,
            created_at=notification.created_at,
            logo_url=logo_url or config.EMAIL_LOGO_URL,
        )
        response = await send_email(
            to=address,
            subject=f"LIA Admin - {notification.title}",
            mjml_content=mjml_content,
        )
        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info(f"✅ Notification email sent to {address}: {message_id}")
        return {"success": True, "message_id": message_id}
    except EmailNotConfiguredError as e:
        logger.warning(f"⚠️ Email notifications not configured: {e}")
        return {"success": False, "error": str(e)}
    except Exception as e:
        logger.error(f"❌ Email sending failed to {address}: {e}")
        return {"success": False, "error": str(e)}
