"""
MJML Email Templates
Notification emails rendered with MJML for responsive, cross-client compatibility
"""

import html
from datetime import datetime
from typing import Optional

from .config import FRONTEND_URL
from .utils.dates import format_datetime

# App theme colors - Indigo/Violet color scheme
THEME = {
    "primary": "#4f46e5",
    "primary_dark": "#4338ca",
    "accent": "#7c3aed",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#1e293b",
    "text_secondary": "#374151",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}

NOTIFICATION_ICONS = {
    "TASK_REMINDER": "📋",
    "TASK_CREATED": "✅",
    "TASK_DUE_SOON": "⏰",
    "TASK_OVERDUE": "🚨",
    "TASK_COMPLETED": "🎉",
    "APPOINTMENT_REMINDER": "📅",
    "APPOINTMENT_CREATED": "📝",
    "APPOINTMENT_CANCELLED": "❌",
    "PAYMENT_DUE": "💰",
    "LARGE_EXPENSE": "💸",
    "SYSTEM_UPDATE": "🔧",
    "GENERAL": "🔔",
}

NOTIFICATION_PRIORITIES = {
    "TASK_OVERDUE": "High",
    "APPOINTMENT_REMINDER": "High",
    "PAYMENT_DUE": "High",
    "TASK_DUE_SOON": "Medium",
    "TASK_REMINDER": "Medium",
    "LARGE_EXPENSE": "Medium",
}


def get_notification_icon(notification_type: str) -> str:
    return NOTIFICATION_ICONS.get(notification_type, "🔔")


def get_notification_priority(notification_type: str) -> str:
    return NOTIFICATION_PRIORITIES.get(notification_type, "Low")


def _parse_timestamp(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _format_amount(value) -> str:
    try:
        return f"${float(value):,.2f}"
    except (TypeError, ValueError):
        return str(value)


def build_detail_rows(notification_type: str, created_at: Optional[datetime], payload: dict) -> list[tuple[str, str]]:
    """Label/value rows shown under the message, depending on what the payload refers to"""
    rows = [
        ("Notification Type", notification_type.replace("_", " ")),
        ("Time", format_datetime(created_at or datetime.now())),
        ("Priority", get_notification_priority(notification_type)),
    ]

    # Task-specific
    if payload.get("taskTitle"):
        rows.append(("Task", payload["taskTitle"]))
    if payload.get("dueDate"):
        due = _parse_timestamp(payload["dueDate"])
        rows.append(("Due Date", format_datetime(due) if due else str(payload["dueDate"])))
    if payload.get("oldStatus") or payload.get("newStatus"):
        old_status = f"{payload['oldStatus']} → " if payload.get("oldStatus") else ""
        rows.append(("Status", f"{old_status}{payload.get('newStatus') or ''}"))

    # Appointment-specific
    if payload.get("appointmentTitle"):
        rows.append(("Appointment", payload["appointmentTitle"]))
    for key, label in (("startTime", "Starts"), ("endTime", "Ends")):
        if payload.get(key):
            moment = _parse_timestamp(payload[key])
            rows.append((label, format_datetime(moment) if moment else str(payload[key])))
    if payload.get("location"):
        rows.append(("Location", payload["location"]))

    # Finance-specific
    if payload.get("transactionId") or payload.get("amount") is not None:
        if payload.get("title"):
            rows.append(("Transaction", payload["title"]))
        if payload.get("amount") is not None:
            rows.append(("Amount", _format_amount(payload["amount"])))

    return rows


def get_cta(notification_type: str, payload: dict) -> tuple[str, str]:
    """Call-to-action link pointing at the resource the notification is about"""
    if payload.get("taskId"):
        return f"{FRONTEND_URL}/app/tasks/{payload['taskId']}", "Open Task"
    if payload.get("appointmentId"):
        return f"{FRONTEND_URL}/app/appointments/{payload['appointmentId']}", "Open Appointment"
    if notification_type.startswith("PAYMENT") or payload.get("transactionId"):
        return f"{FRONTEND_URL}/app/finance", "Open Finance"
    return f"{FRONTEND_URL}/app/notifications", "View in LIA Admin Dashboard"


def notification_email_template(
    title: str,
    message: str,
    notification_type: str,
    payload: Optional[dict] = None,
    created_at: Optional[datetime] = None,
    logo_url: Optional[str] = None,
) -> str:
    """MJML template for any in-app notification mirrored to email"""
    payload = payload or {}
    safe_title = html.escape(title)
    icon = get_notification_icon(notification_type)
    cta_url, cta_label = get_cta(notification_type, payload)

    if logo_url:
        logo = f'<mj-image src="{html.escape(logo_url)}" alt="LIA Admin" width="48px" padding="0 0 12px 0" />'
    else:
        logo = '<mj-text align="center" font-size="28px" padding="0 0 12px 0">📋</mj-text>'

    detail_rows = "".join(
        f"""
              <tr style="border-bottom: 1px solid {THEME['border']};">
                <td style="padding: 8px 0; font-weight: 600; color: {THEME['text_secondary']};">{html.escape(label)}</td>
                <td style="padding: 8px 0; color: {THEME['text_muted']}; text-align: right;">{html.escape(str(value))}</td>
              </tr>"""
        for label, value in build_detail_rows(notification_type, created_at, payload)
    )

    return f"""
    <mjml>
      <mj-head>
        <mj-title>LIA Admin - {safe_title}</mj-title>
        <mj-preview>{safe_title}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Inter, -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <!-- Header with Logo -->
        <mj-section background-color="{THEME['primary']}" padding="32px 24px">
          <mj-column>
            {logo}
            <mj-text align="center" font-size="28px" font-weight="700" color="#ffffff" padding="0">
              LIA Admin
            </mj-text>
            <mj-text align="center" font-size="14px" color="#e0e7ff" padding="4px 0 0 0">
              Life Intelligence Assistant
            </mj-text>
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="{THEME['card_bg']}" padding="40px 32px 16px 32px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0">
              {icon} {safe_title}
            </mj-text>
            <mj-text font-size="14px" color="{THEME['text_muted']}" padding="4px 0 24px 0">
              {html.escape(notification_type.replace('_', ' ').lower())}
            </mj-text>
            <mj-text padding="0 0 24px 0">
              {html.escape(message)}
            </mj-text>
            <mj-table font-size="14px" padding="0">
              {detail_rows}
            </mj-table>
          </mj-column>
        </mj-section>

        <mj-section background-color="{THEME['card_bg']}" padding="16px 0 40px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="12px"
              padding="16px 32px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>

        <!-- Footer -->
        <mj-section padding="32px 24px">
          <mj-column>
            <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" padding="0 0 16px 0">
              This is an automated notification from LIA Admin. You can manage your notification preferences in your account settings.
            </mj-text>
            <mj-text align="center" font-size="14px" padding="0">
              <a href="{FRONTEND_URL}/app/dashboard" style="color: {THEME['primary']}; text-decoration: none;">Dashboard</a>
              <span style="color: #cbd5e1; margin: 0 8px;">•</span>
              <a href="{FRONTEND_URL}/app/notifications" style="color: {THEME['primary']}; text-decoration: none;">Notifications</a>
              <span style="color: #cbd5e1; margin: 0 8px;">•</span>
              <a href="{FRONTEND_URL}/app/settings" style="color: {THEME['primary']}; text-decoration: none;">Settings</a>
            </mj-text>
            <mj-text align="center" font-size="12px" color="#9ca3af" padding="16px 0 0 0">
              © {datetime.now().year} LIA Admin. All rights reserved.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """
