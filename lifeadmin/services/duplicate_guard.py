"""
Same-day duplicate suppression for notifications.

Sweeps run on overlapping timers (hourly, 6-hourly, startup, manual), so the
same reminder would otherwise be created several times a day. Before a
notification is created we look for one of the same user and type, created
today, that points at the same resource (and reminder kind, when tagged).
Without a resource reference the exact title and message are compared instead.

This is a query-then-insert check, not a transactional guarantee: two sweeps
racing on the same entity can still both insert.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.notifications import NotificationRepository
from ..models import Notification
from ..utils.dates import day_window

logger = logging.getLogger(__name__)


def find_duplicate(
    db: Session,
    user_id: int,
    notification_type: str,
    resource_key: Optional[str] = None,
    resource_id=None,
    reminder_kind: Optional[str] = None,
    *,
    title: Optional[str] = None,
    message: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[Notification]:
    """Return the notification already created today that makes a new one redundant"""
    day_start, day_end = day_window(now or datetime.now())
    has_resource = bool(resource_key) and resource_id is not None and resource_id != ""

    existing = NotificationRepository.find_same_day(
        db,
        user_id=user_id,
        notification_type=notification_type,
        day_start=day_start,
        day_end=day_end,
        resource_key=resource_key if has_resource else None,
        resource_id=str(resource_id) if has_resource else None,
        reminder_type=reminder_kind if has_resource else None,
        title=title,
        message=message,
    )

    if existing:
        logger.info(
            f"🔁 Skipping duplicate notification for same day: user={user_id} type={notification_type} "
            f"{resource_key}={resource_id} reminder={reminder_kind} (existing #{existing.id})"
        )
    return existing


def should_suppress(
    db: Session,
    user_id: int,
    notification_type: str,
    resource_key: Optional[str] = None,
    resource_id=None,
    reminder_kind: Optional[str] = None,
    *,
    title: Optional[str] = None,
    message: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    return (
        find_duplicate(
            db,
            user_id,
            notification_type,
            resource_key,
            resource_id,
            reminder_kind,
            title=title,
            message=message,
            now=now,
        )
        is not None
    )
