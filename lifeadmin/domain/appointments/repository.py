"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentStatus


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def find_appointments(
        db: Session,
        statuses: Optional[Iterable] = None,
        start_from: Optional[datetime] = None,
        start_until: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
        end_until: Optional[datetime] = None,
        user_id: Optional[int] = None,
    ) -> list[Appointment]:
        """
        Find appointments matching every given filter.

        ``*_until`` bounds are inclusive, ``start_before`` is exclusive.
        """
        query = db.query(Appointment)

        if user_id is not None:
            query = query.filter(Appointment.user_id == user_id)
        if statuses is not None:
            values = [s.value if hasattr(s, "value") else s for s in statuses]
            query = query.filter(Appointment.status.in_(values))
        if start_from is not None:
            query = query.filter(Appointment.start_time >= start_from)
        if start_until is not None:
            query = query.filter(Appointment.start_time <= start_until)
        if start_before is not None:
            query = query.filter(Appointment.start_time < start_before)
        if end_until is not None:
            query = query.filter(Appointment.end_time <= end_until)

        return query.order_by(Appointment.id.asc()).all()

    @staticmethod
    def update_status(
        db: Session, appointment: Appointment, status: AppointmentStatus, now: datetime
    ) -> Appointment:
        appointment.status = status.value
        appointment.updated_at = now
        db.commit()
        db.refresh(appointment)
        return appointment
