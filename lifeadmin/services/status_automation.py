"""
Automated status transitions for tasks and appointments
Handles PENDING → IN_PROGRESS → COMPLETED for tasks
Handles SCHEDULED → CONFIRMED → COMPLETED for appointments

Every sweep is level-triggered: it re-selects entities from their current state
and the clock, so an entity whose update failed stays in its source state and
is picked up again on the next run. One entity failing never aborts the batch.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy.orm import Session

from ..domain.appointments import AppointmentRepository
from ..domain.tasks import TaskRepository
from ..models import AppointmentStatus, NotificationType, TaskStatus
from ..utils.dates import end_of_today, end_of_yesterday, format_date, format_datetime
from .notification_service import NotificationDispatcher
from .notification_triggers import create_and_send_notification

logger = logging.getLogger(__name__)


async def _transition_batch(
    db: Session,
    label: str,
    entities: list,
    apply: Callable[[object], object],
    notify: Callable[[object], Awaitable[object]],
) -> dict:
    """Apply ``apply`` to each entity, then ``notify``; count successes and failures"""
    summary = {"updated_count": 0, "error_count": 0, "total_found": len(entities)}

    for entity in entities:
        title = entity.title
        try:
            apply(entity)
        except Exception as e:
            db.rollback()
            summary["error_count"] += 1
            logger.error(f"❌ Error updating {label} for \"{title}\" (ID: {entity.id}): {e}")
            continue

        await notify(entity)
        summary["updated_count"] += 1
        logger.info(f"✅ {label}: \"{title}\" (ID: {entity.id})")

    logger.info(
        f"📊 {label}: {summary['updated_count']} updated, "
        f"{summary['error_count']} errors, {summary['total_found']} found"
    )
    return summary


async def update_tasks_to_in_progress(
    db: Session, dispatcher: Optional[NotificationDispatcher] = None, now: Optional[datetime] = None
) -> dict:
    """
    Move PENDING tasks whose due date is today or earlier to IN_PROGRESS

    Returns:
        dict: {"updated_count", "error_count", "total_found"}
    """
    now = now or datetime.now()

    try:
        tasks = TaskRepository.find_tasks(
            db, statuses=[TaskStatus.PENDING], due_until=end_of_today(now)
        )
    except Exception as e:
        logger.error(f"❌ Error updating tasks to IN_PROGRESS: {str(e)}")
        raise

    logger.info(f"🔄 Found {len(tasks)} tasks to update to IN_PROGRESS")

    def apply(task):
        TaskRepository.update_status(db, task, TaskStatus.IN_PROGRESS, now)

    async def notify(task):
        await create_and_send_notification(
            db,
            task.user_id,
            NotificationType.TASK_REMINDER.value,
            "Task Status Update",
            f'Your task "{task.title}" has been automatically moved to "In Progress" status as it is '
            f"due today ({format_date(task.due_date)}). Please ensure timely completion.",
            {
                "taskId": task.id,
                "taskTitle": task.title,
                "oldStatus": TaskStatus.PENDING.value,
                "newStatus": TaskStatus.IN_PROGRESS.value,
                "reminderType": "status_in_progress",
            },
            dispatcher=dispatcher,
            now=now,
        )

    return await _transition_batch(db, "PENDING → IN_PROGRESS", tasks, apply, notify)


async def update_overdue_tasks_to_completed(
    db: Session, dispatcher: Optional[NotificationDispatcher] = None, now: Optional[datetime] = None
) -> dict:
    """Mark IN_PROGRESS tasks due yesterday or earlier as COMPLETED"""
    now = now or datetime.now()

    try:
        tasks = TaskRepository.find_tasks(
            db, statuses=[TaskStatus.IN_PROGRESS], due_until=end_of_yesterday(now)
        )
    except Exception as e:
        logger.error(f"❌ Error updating overdue tasks to COMPLETED: {str(e)}")
        raise

    logger.info(f"🔄 Found {len(tasks)} overdue tasks to mark as COMPLETED")

    def apply(task):
        TaskRepository.update_status(db, task, TaskStatus.COMPLETED, now)

    async def notify(task):
        await create_and_send_notification(
            db,
            task.user_id,
            NotificationType.TASK_REMINDER.value,
            "Task Automatically Completed",
            f'Your task "{task.title}" has been automatically marked as completed since it was overdue '
            f'(due date: {format_date(task.due_date)}). The task was moved from "In Progress" to '
            '"Completed" status.',
            {
                "taskId": task.id,
                "taskTitle": task.title,
                "oldStatus": TaskStatus.IN_PROGRESS.value,
                "newStatus": TaskStatus.COMPLETED.value,
                "dueDate": task.due_date,
                "completedAt": task.completed_at,
                "reminderType": "auto_completed",
            },
            dispatcher=dispatcher,
            now=now,
        )

    return await _transition_batch(db, "IN_PROGRESS → COMPLETED", tasks, apply, notify)


async def update_appointments_to_confirmed(
    db: Session, dispatcher: Optional[NotificationDispatcher] = None, now: Optional[datetime] = None
) -> dict:
    """Move SCHEDULED appointments starting today or earlier to CONFIRMED"""
    now = now or datetime.now()

    try:
        appointments = AppointmentRepository.find_appointments(
            db, statuses=[AppointmentStatus.SCHEDULED], start_until=end_of_today(now)
        )
    except Exception as e:
        logger.error(f"❌ Error updating appointments to CONFIRMED: {str(e)}")
        raise

    logger.info(f"🔄 Found {len(appointments)} appointments to update to CONFIRMED")

    def apply(appointment):
        AppointmentRepository.update_status(db, appointment, AppointmentStatus.CONFIRMED, now)

    async def notify(appointment):
        await create_and_send_notification(
            db,
            appointment.user_id,
            NotificationType.APPOINTMENT_REMINDER.value,
            "Appointment Status Update",
            f'Your appointment "{appointment.title}" has been automatically moved to "Confirmed" status '
            f"as it is scheduled for today ({format_date(appointment.start_time)}). "
            "Please ensure you're prepared and arrive on time.",
            {
                "appointmentId": appointment.id,
                "appointmentTitle": appointment.title,
                "oldStatus": AppointmentStatus.SCHEDULED.value,
                "newStatus": AppointmentStatus.CONFIRMED.value,
                "startTime": appointment.start_time,
                "endTime": appointment.end_time,
                "location": appointment.location,
                "reminderType": "status_confirmed",
            },
            dispatcher=dispatcher,
            now=now,
        )

    return await _transition_batch(db, "SCHEDULED → CONFIRMED", appointments, apply, notify)


async def update_appointments_to_completed(
    db: Session, dispatcher: Optional[NotificationDispatcher] = None, now: Optional[datetime] = None
) -> dict:
    """Mark CONFIRMED appointments that ended yesterday or earlier as COMPLETED"""
    now = now or datetime.now()

    try:
        appointments = AppointmentRepository.find_appointments(
            db, statuses=[AppointmentStatus.CONFIRMED], end_until=end_of_yesterday(now)
        )
    except Exception as e:
        logger.error(f"❌ Error updating appointments to COMPLETED: {str(e)}")
        raise

    logger.info(f"🔄 Found {len(appointments)} appointments to update to COMPLETED")

    def apply(appointment):
        AppointmentRepository.update_status(db, appointment, AppointmentStatus.COMPLETED, now)

    async def notify(appointment):
        await create_and_send_notification(
            db,
            appointment.user_id,
            NotificationType.APPOINTMENT_REMINDER.value,
            "Appointment Automatically Completed",
            f'Your appointment "{appointment.title}" has been automatically marked as completed since it '
            f"has ended (end time: {format_datetime(appointment.end_time)}). The appointment was moved "
            'from "Confirmed" to "Completed" status.',
            {
                "appointmentId": appointment.id,
                "appointmentTitle": appointment.title,
                "oldStatus": AppointmentStatus.CONFIRMED.value,
                "newStatus": AppointmentStatus.COMPLETED.value,
                "startTime": appointment.start_time,
                "endTime": appointment.end_time,
                "location": appointment.location,
                "reminderType": "auto_completed",
            },
            dispatcher=dispatcher,
            now=now,
        )

    return await _transition_batch(db, "CONFIRMED → COMPLETED", appointments, apply, notify)
