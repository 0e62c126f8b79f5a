"""
Unified Notification Service
Fans a notification out to email, SMS and WhatsApp according to the user's settings.
Each channel is independent: a failure on one never blocks the others and
nothing is retried. Partial delivery is reported in the returned result.
"""

import logging
from typing import Awaitable, Callable, Optional

from ..shared.validators import validate_phone

logger = logging.getLogger(__name__)

ChannelSender = Callable[..., Awaitable[dict]]

MISSING_EMAIL = "No email address on file"
MISSING_PHONE = "No phone number on file"
INVALID_PHONE = "Invalid phone number format"


def _failure(error: str) -> dict:
    return {"success": False, "error": error}


async def _attempt(channel: str, user_id: int, sender: ChannelSender, *args, **kwargs) -> dict:
    """Call a channel sender, converting anything it raises into a failure result"""
    try:
        result = await sender(*args, **kwargs)
    except Exception as e:
        logger.error(f"❌ {channel} sender raised for user {user_id}: {e}")
        return _failure(str(e))

    if result.get("success"):
        logger.info(f"✅ {channel} notification delivered to user {user_id}")
    else:
        logger.warning(f"⚠️ {channel} notification not delivered to user {user_id}: {result.get('error')}")
    return result


def _normalized_phone(user, channel: str) -> tuple[Optional[str], Optional[dict]]:
    """E.164 phone of the user, or the failure result explaining why there is none"""
    phone = getattr(user, "phone_number", None)
    if not phone:
        logger.debug(f"⚠️ No phone number for {channel} notification to user {user.id}")
        return None, _failure(MISSING_PHONE)
    try:
        return validate_phone(phone), None
    except ValueError:
        logger.warning(f"⚠️ Invalid phone number format for user {user.id}: {phone}")
        return None, _failure(INVALID_PHONE)


async def send_notification(
    user_id: int,
    notification,
    settings,
    user,
    email_func: Optional[ChannelSender] = None,
    sms_func: Optional[ChannelSender] = None,
    whatsapp_func: Optional[ChannelSender] = None,
    logo_url: Optional[str] = None,
) -> dict:
    """
    Unified notification sender for all delivery channels

    Args:
        user_id: Recipient user ID
        notification: Notification row (title, message, type, payload)
        settings: UserSettings with the per-channel flags
        user: User carrying the contact fields
        email_func / sms_func / whatsapp_func: Channel senders, default to the real services
        logo_url: Optional logo for the email branding

    Returns:
        {"email": result | None, "sms": result | None, "whatsapp": result | None}
        where None means the channel is disabled for this user.
    """
    if email_func is None:
        from ..email_service import send_email_notification as email_func
    if sms_func is None:
        from .twilio_service import send_sms_notification as sms_func
    if whatsapp_func is None:
        from .whatsapp_service import send_whatsapp_notification as whatsapp_func

    results = {"email": None, "sms": None, "whatsapp": None}

    if settings is None:
        logger.debug(f"ℹ️ No notification settings for user {user_id} - nothing dispatched")
        return results

    # Email
    if settings.email_notifications:
        if user.email:
            results["email"] = await _attempt(
                "Email", user_id, email_func, user.email, notification, logo_url=logo_url
            )
        else:
            logger.debug(f"⚠️ No email address for notification to user {user_id}")
            results["email"] = _failure(MISSING_EMAIL)

    # SMS
    if settings.sms_notifications:
        phone, failure = _normalized_phone(user, "SMS")
        results["sms"] = failure or await _attempt("SMS", user_id, sms_func, phone, notification)

    # WhatsApp
    if settings.whatsapp_notifications:
        phone, failure = _normalized_phone(user, "WhatsApp")
        results["whatsapp"] = failure or await _attempt(
            "WhatsApp", user_id, whatsapp_func, phone, notification
        )

    return results


class NotificationDispatcher:
    """
    Channel fan-out with its senders bound at construction.

    Sweepers and the scheduler take a dispatcher so tests and alternative
    deployments can swap the delivery channels without patching modules.
    """

    def __init__(
        self,
        email_func: Optional[ChannelSender] = None,
        sms_func: Optional[ChannelSender] = None,
        whatsapp_func: Optional[ChannelSender] = None,
        logo_url: Optional[str] = None,
    ):
        self.email_func = email_func
        self.sms_func = sms_func
        self.whatsapp_func = whatsapp_func
        self.logo_url = logo_url

    async def dispatch(self, user_id: int, notification, settings, user) -> dict:
        return await send_notification(
            user_id,
            notification,
            settings,
            user,
            email_func=self.email_func,
            sms_func=self.sms_func,
            whatsapp_func=self.whatsapp_func,
            logo_url=self.logo_url,
        )


default_dispatcher = NotificationDispatcher()
