"""
Twilio SMS Service
Sends notification SMS through the Twilio Messages REST API
"""

import logging
from typing import Optional

import httpx

from .. import config
from ..utils.http import client_scope, safe_json

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


def build_sms_body(notification) -> str:
    return (
        f"LIA Admin: {notification.title}\n\n{notification.message}\n\n"
        f"View details: {config.FRONTEND_URL}/app/notifications"
    )


async def send_sms_notification(
    to_phone: str, notification, client: Optional[httpx.AsyncClient] = None
) -> dict:
    """
    Send a notification as SMS via Twilio

    Args:
        to_phone: Recipient phone number in E.164 format
        notification: Notification (title/message) to deliver
        client: Optional httpx client, a short-lived one is created otherwise

    Returns:
        {"success": True, "message_id": sid} or {"success": False, "error": ...}
    """
    if not (config.TWILIO_ACCOUNT_SID and config.TWILIO_AUTH_TOKEN and config.TWILIO_PHONE_NUMBER):
        logger.warning("⚠️ SMS notifications not configured - Twilio credentials missing")
        return {"success": False, "error": "SMS service not configured"}

    if not to_phone or not to_phone.startswith("+"):
        logger.warning(f"Phone number not in E.164 format: {to_phone}")
        return {"success": False, "error": "Phone number must be in E.164 format (e.g., +1234567890)"}

    account_sid = config.TWILIO_ACCOUNT_SID
    data = {"To": to_phone, "From": config.TWILIO_PHONE_NUMBER, "Body": build_sms_body(notification)}

    try:
        logger.info(f"🚀 Sending SMS to Twilio API for {to_phone}")
        async with client_scope(client) as http:
            response = await http.post(
                f"{TWILIO_API_BASE}/Accounts/{account_sid}/Messages.json",
                auth=(account_sid, config.TWILIO_AUTH_TOKEN),
                data=data,
                timeout=10.0,
            )

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in (200, 201):
            message_sid = safe_json(response).get("sid")
            logger.info(f"✅ SMS sent successfully to {to_phone} (SID: {message_sid})")
            return {"success": True, "message_id": message_sid}

        error_data = safe_json(response)
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")
        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        return {
            "success": False,
            "error": f"[{error_code}] {error_message}" if error_code else error_message,
        }

    except httpx.HTTPError as e:
        logger.error(f"Twilio API error: {str(e)}")
        return {"success": False, "error": str(e)}
