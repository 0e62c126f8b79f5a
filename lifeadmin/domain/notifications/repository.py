"""Notification repository - Database operations for notifications and their recipients"""

import json
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import RESOURCE_KEYS, Notification, User


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_payload(data: Optional[dict]) -> Optional[str]:
    """Serialize a payload; ids are stored as strings so lookups compare like for like"""
    if not data:
        return None
    normalized = {
        key: str(value) if key in RESOURCE_KEYS and value is not None else value
        for key, value in data.items()
    }
    return json.dumps(normalized, default=_json_default)


def extract_resource(data: Optional[dict]) -> tuple[Optional[str], Optional[str]]:
    """First resource reference carried by the payload, as (key, id)"""
    if not data:
        return None, None
    for key in RESOURCE_KEYS:
        value = data.get(key)
        if value is not None and value != "":
            return key, str(value)
    return None, None


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def create_notification(
        db: Session,
        user_id: int,
        notification_type: str,
        title: str,
        message: str,
        data: Optional[dict] = None,
        created_at: Optional[datetime] = None,
    ) -> Notification:
        """Insert a notification, indexing its resource reference from the payload"""
        resource_key, resource_id = extract_resource(data)
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=serialize_payload(data),
            resource_key=resource_key,
            resource_id=resource_id,
            reminder_type=(data or {}).get("reminderType"),
            created_at=created_at or datetime.now(),
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def find_same_day(
        db: Session,
        user_id: int,
        notification_type: str,
        day_start: datetime,
        day_end: datetime,
        resource_key: Optional[str] = None,
        resource_id: Optional[str] = None,
        reminder_type: Optional[str] = None,
        title: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        First notification of this user and type created inside [day_start, day_end].

        Matches on the resource reference when one is given, otherwise on the
        exact title and message.
        """
        query = db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.type == notification_type,
            Notification.created_at >= day_start,
            Notification.created_at <= day_end,
        )

        if resource_key and resource_id:
            query = query.filter(
                Notification.resource_key == resource_key,
                Notification.resource_id == str(resource_id),
            )
            if reminder_type:
                query = query.filter(Notification.reminder_type == reminder_type)
        else:
            query = query.filter(Notification.title == title, Notification.message == message)

        return query.order_by(Notification.id.asc()).first()

    @staticmethod
    def count_notifications(
        db: Session, user_id: Optional[int] = None, unread_only: bool = False
    ) -> int:
        query = db.query(Notification)
        if user_id is not None:
            query = query.filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.count()

    @staticmethod
    def get_user_with_settings(db: Session, user_id: int) -> Optional[User]:
        return (
            db.query(User)
            .options(joinedload(User.settings))
            .filter(User.id == user_id)
            .first()
        )

    @staticmethod
    def get_active_users(db: Session) -> list[User]:
        return db.query(User).filter(User.is_active.is_(True)).order_by(User.id.asc()).all()
