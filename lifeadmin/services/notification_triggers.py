"""
Notification triggers
Creates notification rows (after the same-day duplicate check) and dispatches them
to the user's enabled channels. Used by the sweeps and by user-facing events.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from .. import config
from ..domain.notifications import NotificationRepository, extract_resource
from ..models import NotificationType, TransactionType
from ..utils.dates import format_date, format_datetime
from .duplicate_guard import find_duplicate
from .notification_service import NotificationDispatcher, default_dispatcher

logger = logging.getLogger(__name__)


async def deliver_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    data: Optional[dict] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    now: Optional[datetime] = None,
):
    """
    Create and send a notification.

    Returns:
        (notification, created) - ``created`` is False when an equivalent
        notification already exists today (the existing row is returned) and
        the notification is None when the user does not exist.
    """
    now = now or datetime.now()
    dispatcher = dispatcher or default_dispatcher

    user = NotificationRepository.get_user_with_settings(db, user_id)
    if not user:
        logger.error(f"❌ User not found for notification: {user_id}")
        return None, False

    resource_key, resource_id = extract_resource(data)
    existing = find_duplicate(
        db,
        user_id,
        notification_type,
        resource_key,
        resource_id,
        (data or {}).get("reminderType"),
        title=title,
        message=message,
        now=now,
    )
    if existing:
        return existing, False

    notification = NotificationRepository.create_notification(
        db,
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        data=data,
        created_at=now,
    )

    if user.settings:
        results = await dispatcher.dispatch(user_id, notification, user.settings, user)
        logger.info(f"📨 Notification sent: user={user_id} type={notification_type} results={results}")
    else:
        logger.debug(f"ℹ️ User {user_id} has no settings - notification stored only")

    return notification, True


async def create_and_send_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    data: Optional[dict] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    now: Optional[datetime] = None,
):
    """Create and send a notification; never raises, returns the (possibly existing) row or None"""
    try:
        notification, _created = await deliver_notification(
            db, user_id, notification_type, title, message, data, dispatcher, now
        )
        return notification
    except Exception as e:
        logger.error(f"❌ Error creating/sending notification for user {user_id}: {e}")
        db.rollback()
        return None


def _at_location(location: Optional[str]) -> str:
    return f" at {location}" if location else ""


def task_due_soon_notice(task) -> dict:
    return {
        "notification_type": NotificationType.TASK_REMINDER.value,
        "title": "Upcoming Deadline",
        "message": f'Reminder: Your task "{task.title}" is due tomorrow ({format_date(task.due_date)}). '
        "Please ensure completion to meet the deadline.",
        "data": {"taskId": task.id, "taskTitle": task.title, "dueDate": task.due_date, "reminderType": "due_soon"},
    }


def task_overdue_notice(task) -> dict:
    return {
        "notification_type": NotificationType.TASK_REMINDER.value,
        "title": "Overdue Task Alert",
        "message": f'URGENT: Your task "{task.title}" is now overdue (was due {format_date(task.due_date)}). '
        "Please prioritize completion immediately and update the status accordingly.",
        "data": {"taskId": task.id, "taskTitle": task.title, "dueDate": task.due_date, "reminderType": "overdue"},
    }


def appointment_reminder_notice(appointment) -> dict:
    return {
        "notification_type": NotificationType.APPOINTMENT_REMINDER.value,
        "title": "Upcoming Appointment",
        "message": f'Reminder: You have an appointment "{appointment.title}" in 1 hour '
        f"({format_datetime(appointment.start_time)}){_at_location(appointment.location)}. "
        "Please prepare accordingly.",
        "data": {
            "appointmentId": appointment.id,
            "appointmentTitle": appointment.title,
            "startTime": appointment.start_time,
            "reminderType": "upcoming",
        },
    }


# ============================================
# Task events
# ============================================


async def on_task_created(db: Session, task, **kwargs):
    deadline = f" with a deadline of {format_date(task.due_date)}" if task.due_date else ""
    return await create_and_send_notification(
        db,
        task.user_id,
        NotificationType.GENERAL.value,
        "Task Assignment",
        f'A new task "{task.title}" has been assigned to you{deadline}. '
        "Please review and begin work as soon as possible.",
        {"taskId": task.id, "taskTitle": task.title, "reminderType": "created"},
        **kwargs,
    )


async def on_task_due_soon(db: Session, task, **kwargs):
    return await create_and_send_notification(db, task.user_id, **task_due_soon_notice(task), **kwargs)


async def on_task_overdue(db: Session, task, **kwargs):
    return await create_and_send_notification(db, task.user_id, **task_overdue_notice(task), **kwargs)


async def on_task_completed(db: Session, task, **kwargs):
    return await create_and_send_notification(
        db,
        task.user_id,
        NotificationType.GENERAL.value,
        "Task Completion Confirmed",
        f'Excellent work! You have successfully completed the task "{task.title}". '
        "Your contribution has been recorded and is greatly appreciated.",
        {"taskId": task.id, "taskTitle": task.title, "reminderType": "completed"},
        **kwargs,
    )


# ============================================
# Appointment events
# ============================================


async def on_appointment_created(db: Session, appointment, **kwargs):
    return await create_and_send_notification(
        db,
        appointment.user_id,
        NotificationType.GENERAL.value,
        "Appointment Confirmed",
        f'Your appointment "{appointment.title}" has been successfully scheduled for '
        f"{format_datetime(appointment.start_time)}{_at_location(appointment.location)}. "
        "Please arrive on time.",
        {"appointmentId": appointment.id, "appointmentTitle": appointment.title, "reminderType": "created"},
        **kwargs,
    )


async def on_appointment_reminder(db: Session, appointment, **kwargs):
    return await create_and_send_notification(
        db, appointment.user_id, **appointment_reminder_notice(appointment), **kwargs
    )


async def on_appointment_cancelled(db: Session, appointment, **kwargs):
    return await create_and_send_notification(
        db,
        appointment.user_id,
        NotificationType.GENERAL.value,
        "Appointment Cancellation",
        f'Your appointment "{appointment.title}" scheduled for {format_datetime(appointment.start_time)} '
        "has been cancelled. If you need to reschedule, please contact us at your earliest convenience.",
        {"appointmentId": appointment.id, "appointmentTitle": appointment.title, "reminderType": "cancelled"},
        **kwargs,
    )


# ============================================
# Finance events
# ============================================


async def on_payment_due(db: Session, transaction, **kwargs):
    return await create_and_send_notification(
        db,
        transaction.user_id,
        NotificationType.PAYMENT_DUE.value,
        "Payment Reminder",
        f'Payment of ${transaction.amount:,.2f} for "{transaction.title}" is now due. '
        "Please process payment to avoid any late fees or service interruptions.",
        {"transactionId": transaction.id, "amount": transaction.amount, "title": transaction.title},
        **kwargs,
    )


async def on_large_expense(db: Session, transaction, **kwargs):
    """Flag expenses above LARGE_EXPENSE_THRESHOLD; other transactions are ignored"""
    if transaction.type != TransactionType.EXPENSE.value:
        return None
    if transaction.amount <= config.LARGE_EXPENSE_THRESHOLD:
        return None
    return await create_and_send_notification(
        db,
        transaction.user_id,
        NotificationType.GENERAL.value,
        "High-Value Transaction",
        f'A significant expense of ${transaction.amount:,.2f} for "{transaction.title}" has been recorded '
        "in your account. Please review and verify this transaction.",
        {
            "transactionId": transaction.id,
            "amount": transaction.amount,
            "title": transaction.title,
            "reminderType": "large_expense",
        },
        **kwargs,
    )


# ============================================
# System events
# ============================================


async def on_user_registered(db: Session, user, **kwargs):
    return await create_and_send_notification(
        db,
        user.id,
        NotificationType.GENERAL.value,
        "Welcome to LIA Admin!",
        f"Welcome to LIA Admin, {user.first_name or 'there'}! "
        "Start by exploring the dashboard and setting up your first task.",
        {"userId": user.id, "userName": user.first_name},
        **kwargs,
    )


async def on_system_maintenance(db: Session, message: str, **kwargs) -> int:
    """Broadcast a maintenance notice to every active user; returns how many were notified"""
    notified = 0
    for user in NotificationRepository.get_active_users(db):
        notification = await create_and_send_notification(
            db,
            user.id,
            NotificationType.SYSTEM_UPDATE.value,
            "System Maintenance",
            message,
            {"type": "maintenance"},
            **kwargs,
        )
        if notification is not None:
            notified += 1
    return notified
