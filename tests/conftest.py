"""
Shared fixtures: in-memory database, recording channel senders, fixed clock
"""

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lifeadmin import models  # noqa: F401 - register tables
from lifeadmin.database import Base
from lifeadmin.models import Appointment, Notification, Task, User, UserSettings
from lifeadmin.services.notification_service import NotificationDispatcher

# Saturday 17 Oct 2026, 09:30 local time
NOW = datetime(2026, 10, 17, 9, 30)


class RecordingSender:
    """Channel sender double that records every call"""

    def __init__(self, result=None, error=None):
        self.calls = []
        self.result = result
        self.error = error

    async def __call__(self, address, notification, **kwargs):
        self.calls.append((address, notification.title))
        if self.error is not None:
            raise self.error
        return self.result or {"success": True, "message_id": f"msg-{len(self.calls)}"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def senders():
    return {"email": RecordingSender(), "sms": RecordingSender(), "whatsapp": RecordingSender()}


@pytest.fixture
def dispatcher(senders):
    return NotificationDispatcher(
        email_func=senders["email"], sms_func=senders["sms"], whatsapp_func=senders["whatsapp"]
    )


@pytest.fixture
def user(db):
    user = User(
        email="ana@example.com",
        first_name="Ana",
        phone_number="(415) 555-0100",
        settings=UserSettings(
            email_notifications=True, sms_notifications=False, whatsapp_notifications=False
        ),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_task(db, user):
    def _make(title="Renew passport", status="PENDING", due_date=None, created_at=None, owner=None):
        task = Task(
            user_id=(owner or user).id,
            title=title,
            status=status,
            due_date=due_date,
            created_at=created_at or NOW.replace(hour=0),
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    return _make


@pytest.fixture
def make_appointment(db, user):
    def _make(title="Dentist", status="SCHEDULED", start_time=None, end_time=None, location=None):
        appointment = Appointment(
            user_id=user.id,
            title=title,
            status=status,
            start_time=start_time,
            end_time=end_time or start_time,
            location=location,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make


@pytest.fixture
def notifications(db):
    """Fresh list of stored notifications, oldest first"""

    def _all():
        db.expire_all()
        return db.query(Notification).order_by(Notification.id.asc()).all()

    return _all
