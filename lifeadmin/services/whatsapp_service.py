"""
WhatsApp Service
Sends notification messages through the WhatsApp Cloud API
"""

import logging
from typing import Optional

import httpx

from .. import config
from ..utils.http import client_scope, safe_json

logger = logging.getLogger(__name__)


def build_whatsapp_body(notification) -> str:
    return (
        f"*LIA Admin Notification*\n\n*{notification.title}*\n\n{notification.message}\n\n"
        f"_View details: {config.FRONTEND_URL}/app/notifications_"
    )


async def send_whatsapp_notification(
    to_phone: str, notification, client: Optional[httpx.AsyncClient] = None
) -> dict:
    """
    Send a notification as a WhatsApp text message

    Returns:
        {"success": True, "message_id": id} or {"success": False, "error": ...}
    """
    if not config.WHATSAPP_ACCESS_TOKEN or not config.WHATSAPP_PHONE_NUMBER_ID:
        logger.warning("⚠️ WhatsApp notifications not configured - API credentials missing")
        return {"success": False, "error": "WhatsApp service not configured"}

    payload = {
        "messaging_product": "whatsapp",
        # Cloud API expects the number without the leading +
        "to": to_phone.lstrip("+"),
        "type": "text",
        "text": {"body": build_whatsapp_body(notification)},
    }

    try:
        logger.info(f"💬 Sending WhatsApp message to {to_phone}")
        async with client_scope(client) as http:
            response = await http.post(
                f"{config.WHATSAPP_API_URL}/{config.WHATSAPP_PHONE_NUMBER_ID}/messages",
                headers={
                    "Authorization": f"Bearer {config.WHATSAPP_ACCESS_TOKEN}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=10.0,
            )

        result = safe_json(response)
        if response.is_success:
            messages = result.get("messages") or [{}]
            message_id = messages[0].get("id")
            logger.info(f"✅ WhatsApp message sent successfully: {message_id}")
            return {"success": True, "message_id": message_id}

        error_message = (result.get("error") or {}).get("message") or "WhatsApp API error"
        logger.error(f"❌ WhatsApp API error ({response.status_code}): {error_message}")
        return {"success": False, "error": error_message}

    except httpx.HTTPError as e:
        logger.error(f"WhatsApp sending failed: {str(e)}")
        return {"success": False, "error": str(e)}
