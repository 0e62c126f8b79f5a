import json
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class NotificationType(str, Enum):
    GENERAL = "GENERAL"
    TASK_REMINDER = "TASK_REMINDER"
    APPOINTMENT_REMINDER = "APPOINTMENT_REMINDER"
    PAYMENT_DUE = "PAYMENT_DUE"
    SYSTEM_UPDATE = "SYSTEM_UPDATE"


# Payload keys that link a notification to the resource it is about, in lookup order
RESOURCE_KEYS = ("taskId", "appointmentId", "transactionId")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone_number = Column(String(50), nullable=True)  # Used for SMS and WhatsApp
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    settings = relationship(
        "UserSettings", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    tasks = relationship("Task", back_populates="user", cascade="all, delete-orphan")
    appointments = relationship(
        "Appointment", back_populates="user", cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )


class UserSettings(Base):
    """Per-user delivery preferences"""

    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    email_notifications = Column(Boolean, default=True, nullable=False)
    sms_notifications = Column(Boolean, default=False, nullable=False)
    whatsapp_notifications = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    user = relationship("User", back_populates="settings")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    # PENDING -> IN_PROGRESS -> COMPLETED
    status = Column(String(20), default=TaskStatus.PENDING.value, nullable=False, index=True)
    due_date = Column(DateTime, nullable=True, index=True)
    completed_at = Column(DateTime, nullable=True)  # Set iff status == COMPLETED
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    user = relationship("User", back_populates="tasks")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    # SCHEDULED -> CONFIRMED -> COMPLETED, CANCELLED only by user action
    status = Column(
        String(20), default=AppointmentStatus.SCHEDULED.value, nullable=False, index=True
    )
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    location = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    user = relationship("User", back_populates="appointments")


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    amount = Column(Float, nullable=False)
    type = Column(String(20), default=TransactionType.EXPENSE.value, nullable=False)
    date = Column(DateTime, default=datetime.now)
    created_at = Column(DateTime, default=datetime.now)

    user = relationship("User")


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index(
            "ix_notifications_dedup",
            "user_id",
            "type",
            "resource_key",
            "resource_id",
            "created_at",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), default=NotificationType.GENERAL.value, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    data = Column(Text, nullable=True)  # JSON payload, e.g. {"taskId": "1", "reminderType": ...}
    # Structured copy of the payload's resource linkage for the same-day duplicate check
    resource_key = Column(String(50), nullable=True)
    resource_id = Column(String(100), nullable=True)
    reminder_type = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    user = relationship("User", back_populates="notifications")

    @property
    def payload(self) -> dict:
        """Decoded ``data`` blob; empty dict when missing or malformed"""
        if not self.data:
            return {}
        try:
            value = json.loads(self.data)
        except (TypeError, ValueError):
            return {}
        return value if isinstance(value, dict) else {}
