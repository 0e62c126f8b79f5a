import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _int_list(value: str) -> tuple[int, ...]:
    """Parse a comma separated list of hours such as "7,20"."""
    return tuple(int(part) for part in value.split(",") if part.strip())


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lifeadmin.db")

# Frontend base URL used in notification links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "LIA Admin <noreply@liaadmin.com>")
EMAIL_LOGO_URL = os.getenv("EMAIL_LOGO_URL")

# SMTP fallback, used when Resend is not configured
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Twilio SMS Configuration
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")

# WhatsApp Cloud API Configuration
WHATSAPP_API_URL = os.getenv("WHATSAPP_API_URL", "https://graph.facebook.com/v18.0")
WHATSAPP_ACCESS_TOKEN = os.getenv("WHATSAPP_ACCESS_TOKEN")
WHATSAPP_PHONE_NUMBER_ID = os.getenv("WHATSAPP_PHONE_NUMBER_ID")

# Notification scheduler
NOTIFICATION_SCHEDULER_ENABLED = (
    os.getenv("NOTIFICATION_SCHEDULER_ENABLED", "true").lower() == "true"
)
NOTIFICATION_STARTUP_DELAY = float(os.getenv("NOTIFICATION_STARTUP_DELAY", "5"))
# Wall-clock hours (server local time) at which gated reminders fire
DAY_BEFORE_REMINDER_HOURS = _int_list(os.getenv("DAY_BEFORE_REMINDER_HOURS", "7,20"))
DUE_TODAY_REMINDER_HOURS = _int_list(os.getenv("DUE_TODAY_REMINDER_HOURS", "6"))

# Expenses above this amount raise a high-value transaction notification
LARGE_EXPENSE_THRESHOLD = float(os.getenv("LARGE_EXPENSE_THRESHOLD", "1000"))

# Shared key for the internal ops endpoints - endpoints are disabled when unset
OPS_API_KEY = os.getenv("OPS_API_KEY")

# Redis (arq worker) - REDIS_URL wins over the individual settings
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"
