"""Task repository - Database operations for tasks"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models import Task, TaskStatus


class TaskRepository:
    """Repository for task database operations"""

    @staticmethod
    def find_tasks(
        db: Session,
        statuses: Optional[Iterable[str]] = None,
        due_from: Optional[datetime] = None,
        due_until: Optional[datetime] = None,
        due_before: Optional[datetime] = None,
        created_from: Optional[datetime] = None,
        created_until: Optional[datetime] = None,
        user_id: Optional[int] = None,
    ) -> list[Task]:
        """
        Find tasks matching every given filter.

        ``due_until`` and ``created_until`` are inclusive bounds, ``due_before``
        is exclusive. Tasks without a due date never match a due filter.
        """
        query = db.query(Task)

        if user_id is not None:
            query = query.filter(Task.user_id == user_id)
        if statuses is not None:
            query = query.filter(Task.status.in_(_values(statuses)))
        if due_from is not None:
            query = query.filter(Task.due_date >= due_from)
        if due_until is not None:
            query = query.filter(Task.due_date <= due_until)
        if due_before is not None:
            query = query.filter(Task.due_date < due_before)
        if created_from is not None:
            query = query.filter(Task.created_at >= created_from)
        if created_until is not None:
            query = query.filter(Task.created_at <= created_until)

        return query.order_by(Task.id.asc()).all()

    @staticmethod
    def update_status(db: Session, task: Task, status: TaskStatus, now: datetime) -> Task:
        """Move a task to ``status``; completed_at follows the COMPLETED state"""
        task.status = status.value
        task.completed_at = now if status == TaskStatus.COMPLETED else None
        task.updated_at = now
        db.commit()
        db.refresh(task)
        return task


def _values(statuses: Iterable) -> list[str]:
    return [s.value if hasattr(s, "value") else s for s in statuses]
