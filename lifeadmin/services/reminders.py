"""
Reminder sweeps
Time-window reminders for tasks and appointments. None of these change entity
state; re-running one inside the same day creates nothing new because every
reminder carries its own reminderType for the duplicate check.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from .. import config
from ..domain.appointments import AppointmentRepository
from ..domain.tasks import TaskRepository
from ..models import AppointmentStatus, NotificationType, TaskStatus
from ..utils.dates import day_window, format_date, format_datetime
from .notification_service import NotificationDispatcher
from .notification_triggers import (
    appointment_reminder_notice,
    deliver_notification,
    task_due_soon_notice,
    task_overdue_notice,
)

logger = logging.getLogger(__name__)

OPEN_TASK_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)
ACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


def _empty_summary(total_found: int = 0) -> dict:
    return {"sent_count": 0, "error_count": 0, "total_found": total_found}


async def _remind_batch(
    db: Session,
    label: str,
    entities: list,
    build: Callable[[object], dict],
    dispatcher: Optional[NotificationDispatcher],
    now: datetime,
    summary: Optional[dict] = None,
) -> dict:
    """Send ``build(entity)`` for every entity; duplicates are found but not counted as sent"""
    summary = summary or _empty_summary()
    summary["total_found"] += len(entities)

    for entity in entities:
        try:
            _notification, created = await deliver_notification(
                db, entity.user_id, **build(entity), dispatcher=dispatcher, now=now
            )
        except Exception as e:
            db.rollback()
            summary["error_count"] += 1
            logger.error(f"❌ Error sending {label} for ID {entity.id}: {e}")
            continue
        if created:
            summary["sent_count"] += 1

    return summary


def _query(label: str, finder: Callable[[], list]) -> list:
    try:
        return finder()
    except Exception as e:
        logger.error(f"❌ Error checking {label}: {str(e)}")
        raise


def _outside_hours(label: str, now: datetime, hours: tuple) -> bool:
    if now.hour in hours:
        return False
    logger.debug(f"⏭️ {label} only run at hours {hours} - current hour is {now.hour}")
    return True


async def check_overdue_tasks(
    db: Session, dispatcher: Optional[NotificationDispatcher] = None, now: Optional[datetime] = None
) -> dict:
    """Alert on open tasks whose due date has passed"""
    now = now or datetime.now()
    tasks = _query(
        "overdue tasks",
        lambda: TaskRepository.find_tasks(db, statuses=OPEN_TASK_STATUSES, due_before=now),
    )
    summary = await _remind_batch(db, "overdue alert", tasks, task_overdue_notice, dispatcher, now)
    logger.info(f"✅ Checked {summary['total_found']} overdue tasks, {summary['sent_count']} alerts sent")
    return summary


async def check_tasks_due_soon(
    db: Session, dispatcher: Optional[NotificationDispatcher] = None, now: Optional[datetime] = None
) -> dict:
    """Remind about open tasks due tomorrow"""
    now = now or datetime.now()
    tomorrow_start, tomorrow_end = day_window(now, 1)
    tasks = _query(
        "tasks due soon",
        lambda: TaskRepository.find_tasks(
            db, statuses=OPEN_TASK_STATUSES, due_from=tomorrow_start, due_until=tomorrow_end
        ),
    )
    summary = await _remind_batch(db, "due-soon reminder", tasks, task_due_soon_notice, dispatcher, now)
    logger.info(f"✅ Checked {summary['total_found']} tasks due soon, {summary['sent_count']} reminders sent")
    return summary


async def check_upcoming_appointments(
    db: Session, dispatcher: Optional[NotificationDispatcher] = None, now: Optional[datetime] = None
) -> dict:
    """Remind about SCHEDULED appointments starting between one and two hours from now"""
    now = now or datetime.now()
    appointments = _query(
        "upcoming appointments",
        lambda: AppointmentRepository.find_appointments(
            db,
            statuses=[AppointmentStatus.SCHEDULED],
            start_from=now + timedelta(hours=1),
            start_before=now + timedelta(hours=2),
        ),
    )
    summary = await _remind_batch(
        db, "appointment reminder", appointments, appointment_reminder_notice, dispatcher, now
    )
    logger.info(
        f"✅ Checked {summary['total_found']} upcoming appointments, {summary['sent_count']} reminders sent"
    )
    return summary


def _day_before_task(task) -> dict:
    return {
        "notification_type": NotificationType.TASK_REMINDER.value,
        "title": "Task Due Tomorrow",
        "message": f'Reminder: Your task "{task.title}" is due tomorrow ({format_date(task.due_date)}). '
        "Please ensure you're prepared to complete it on time.",
        "data": {"taskId": task.id, "taskTitle": task.title, "dueDate": task.due_date, "reminderType": "day_before"},
    }


def _day_before_appointment(appointment) -> dict:
    location = f" at {appointment.location}" if appointment.location else ""
    return {
        "notification_type": NotificationType.APPOINTMENT_REMINDER.value,
        "title": "Appointment Tomorrow",
        "message": f'Reminder: You have an appointment "{appointment.title}" tomorrow at '
        f"{format_datetime(appointment.start_time)}{location}. Please prepare accordingly.",
        "data": {
            "appointmentId": appointment.id,
            "appointmentTitle": appointment.title,
            "startTime": appointment.start_time,
            "reminderType": "day_before",
        },
    }


def _due_today_task(task) -> dict:
    return {
        "notification_type": NotificationType.TASK_REMINDER.value,
        "title": "Task Due Today",
        "message": f'Final Reminder: Your task "{task.title}" is due today ({format_date(task.due_date)}). '
        "Please complete it as soon as possible to meet your deadline.",
        "data": {"taskId": task.id, "taskTitle": task.title, "dueDate": task.due_date, "reminderType": "due_today"},
    }


def _due_today_appointment(appointment) -> dict:
    location = f" at {appointment.location}" if appointment.location else ""
    return {
        "notification_type": NotificationType.APPOINTMENT_REMINDER.value,
        "title": "Appointment Today",
        "message": f'Final Reminder: You have an appointment "{appointment.title}" today at '
        f"{format_datetime(appointment.start_time)}{location}. Please ensure you're ready and on time.",
        "data": {
            "appointmentId": appointment.id,
            "appointmentTitle": appointment.title,
            "startTime": appointment.start_time,
            "reminderType": "due_today",
        },
    }


async def _windowed_reminders(
    db: Session,
    label: str,
    window: tuple[datetime, datetime],
    build_task: Callable[[object], dict],
    build_appointment: Callable[[object], dict],
    dispatcher: Optional[NotificationDispatcher],
    now: datetime,
) -> dict:
    window_start, window_end = window
    tasks = _query(
        f"{label} tasks",
        lambda: TaskRepository.find_tasks(
            db, statuses=OPEN_TASK_STATUSES, due_from=window_start, due_until=window_end
        ),
    )
    appointments = _query(
        f"{label} appointments",
        lambda: AppointmentRepository.find_appointments(
            db, statuses=ACTIVE_APPOINTMENT_STATUSES, start_from=window_start, start_until=window_end
        ),
    )

    summary = await _remind_batch(db, f"{label} task reminder", tasks, build_task, dispatcher, now)
    summary = await _remind_batch(
        db, f"{label} appointment reminder", appointments, build_appointment, dispatcher, now, summary
    )
    logger.info(
        f"✅ {label} reminders sent: {summary['sent_count']} "
        f"({len(tasks)} tasks, {len(appointments)} appointments)"
    )
    return summary


async def check_day_before_reminders(
    db: Session,
    dispatcher: Optional[NotificationDispatcher] = None,
    now: Optional[datetime] = None,
    hours: Optional[Iterable[int]] = None,
) -> dict:
    """
    Remind about open tasks and active appointments falling tomorrow.

    Only fires during DAY_BEFORE_REMINDER_HOURS (7 AM and 8 PM by default);
    at any other hour nothing is read or written.
    """
    now = now or datetime.now()
    hours = tuple(config.DAY_BEFORE_REMINDER_HOURS if hours is None else hours)
    if _outside_hours("Day-before reminders", now, hours):
        return {"skipped": True, **_empty_summary()}

    logger.info(f"🔔 Checking day-before reminders at {now.hour}:00...")
    return await _windowed_reminders(
        db, "Day-before", day_window(now, 1), _day_before_task, _day_before_appointment, dispatcher, now
    )


async def check_due_today_reminders(
    db: Session,
    dispatcher: Optional[NotificationDispatcher] = None,
    now: Optional[datetime] = None,
    hours: Optional[Iterable[int]] = None,
) -> dict:
    """Final same-day reminder, gated to DUE_TODAY_REMINDER_HOURS (6 AM by default)"""
    now = now or datetime.now()
    hours = tuple(config.DUE_TODAY_REMINDER_HOURS if hours is None else hours)
    if _outside_hours("Due-today reminders", now, hours):
        return {"skipped": True, **_empty_summary()}

    logger.info(f"🔔 Checking due-today reminders at {now.hour}:00...")
    return await _windowed_reminders(
        db, "Due-today", day_window(now), _due_today_task, _due_today_appointment, dispatcher, now
    )


def _follow_up(task) -> dict:
    return {
        "notification_type": NotificationType.TASK_REMINDER.value,
        "title": "Task Follow-up",
        "message": f'Just checking in: "{task.title}" was created earlier today. Keep up the momentum!',
        "data": {"taskId": task.id, "taskTitle": task.title, "reminderType": "follow_up_7h"},
    }


async def check_task_creation_follow_ups(
    db: Session, dispatcher: Optional[NotificationDispatcher] = None, now: Optional[datetime] = None
) -> dict:
    """Check in on tasks created between seven and eight hours ago, as long as that was today"""
    now = now or datetime.now()
    day_start, _day_end = day_window(now)
    created_from = max(now - timedelta(hours=8), day_start)

    tasks = _query(
        "task creation follow-ups",
        lambda: TaskRepository.find_tasks(
            db, created_from=created_from, created_until=now - timedelta(hours=7)
        ),
    )
    summary = await _remind_batch(db, "follow-up", tasks, _follow_up, dispatcher, now)
    logger.info(f"✅ Task creation follow-ups sent: {summary['sent_count']}")
    return summary
