"""Create-and-send path and event triggers"""

import json
from datetime import datetime, timedelta

import pytest

from lifeadmin.models import Transaction, User
from lifeadmin.services import notification_triggers as triggers


class TestDeliverNotification:
    @pytest.mark.asyncio
    async def test_creates_row_and_dispatches(self, db, user, dispatcher, senders, now):
        notification, created = await triggers.deliver_notification(
            db, user.id, "TASK_REMINDER", "Title", "Body", {"taskId": 3, "reminderType": "overdue"},
            dispatcher=dispatcher, now=now,
        )

        assert created is True
        assert notification.created_at == now
        assert notification.resource_key == "taskId"
        assert notification.resource_id == "3"
        assert notification.reminder_type == "overdue"
        assert json.loads(notification.data)["taskId"] == "3"
        assert senders["email"].calls == [("ana@example.com", "Title")]

    @pytest.mark.asyncio
    async def test_second_call_same_day_returns_existing(self, db, user, dispatcher, senders, now):
        first, _ = await triggers.deliver_notification(
            db, user.id, "TASK_REMINDER", "Title", "Body", {"taskId": 3, "reminderType": "overdue"},
            dispatcher=dispatcher, now=now,
        )
        second, created = await triggers.deliver_notification(
            db, user.id, "TASK_REMINDER", "Title", "Body", {"taskId": 3, "reminderType": "overdue"},
            dispatcher=dispatcher, now=now.replace(hour=22),
        )

        assert created is False
        assert second.id == first.id
        assert len(senders["email"].calls) == 1

    @pytest.mark.asyncio
    async def test_user_without_settings_is_stored_only(self, db, dispatcher, senders, now):
        bare = User(email="bare@example.com")
        db.add(bare)
        db.commit()

        notification, created = await triggers.deliver_notification(
            db, bare.id, "GENERAL", "Hello", "World", dispatcher=dispatcher, now=now
        )

        assert created is True
        assert notification.id is not None
        assert senders["email"].calls == []

    @pytest.mark.asyncio
    async def test_unknown_user_returns_none(self, db, dispatcher, now):
        result = await triggers.create_and_send_notification(
            db, 999, "GENERAL", "Hello", "World", dispatcher=dispatcher, now=now
        )
        assert result is None

    @pytest.mark.asyncio
    async def test_create_and_send_swallows_errors(self, db, user, now):
        class ExplodingDispatcher:
            async def dispatch(self, *args):
                raise RuntimeError("boom")

        result = await triggers.create_and_send_notification(
            db, user.id, "GENERAL", "Hello", "World", dispatcher=ExplodingDispatcher(), now=now
        )
        assert result is None


class TestEventTriggers:
    @pytest.mark.asyncio
    async def test_task_events_do_not_suppress_each_other(self, db, make_task, dispatcher, notifications, now):
        task = make_task(title="File taxes", due_date=datetime(2026, 10, 18, 17))

        await triggers.on_task_due_soon(db, task, dispatcher=dispatcher, now=now)
        await triggers.on_task_overdue(db, task, dispatcher=dispatcher, now=now)
        await triggers.on_task_due_soon(db, task, dispatcher=dispatcher, now=now)

        rows = notifications()
        assert [row.title for row in rows] == ["Upcoming Deadline", "Overdue Task Alert"]
        assert "due tomorrow (10/18/2026)" in rows[0].message

    @pytest.mark.asyncio
    async def test_appointment_created_mentions_location(self, db, make_appointment, dispatcher, now):
        appointment = make_appointment(start_time=datetime(2026, 10, 20, 15), location="Main St Clinic")

        notification = await triggers.on_appointment_created(db, appointment, dispatcher=dispatcher, now=now)

        assert notification.title == "Appointment Confirmed"
        assert "10/20/2026, 3:00 PM at Main St Clinic" in notification.message
        assert notification.payload["appointmentId"] == str(appointment.id)

    @pytest.mark.asyncio
    async def test_large_expense_threshold(self, db, user, dispatcher, now):
        small = Transaction(user_id=user.id, title="Groceries", amount=80.0, type="EXPENSE")
        big = Transaction(user_id=user.id, title="Laptop", amount=2500.0, type="EXPENSE")
        income = Transaction(user_id=user.id, title="Salary", amount=5000.0, type="INCOME")
        db.add_all([small, big, income])
        db.commit()

        assert await triggers.on_large_expense(db, small, dispatcher=dispatcher, now=now) is None
        assert await triggers.on_large_expense(db, income, dispatcher=dispatcher, now=now) is None
        flagged = await triggers.on_large_expense(db, big, dispatcher=dispatcher, now=now)
        assert flagged.title == "High-Value Transaction"
        assert "$2,500.00" in flagged.message

    @pytest.mark.asyncio
    async def test_maintenance_broadcast_reaches_active_users(self, db, user, dispatcher, now):
        db.add(User(email="inactive@example.com", is_active=False))
        db.commit()

        notified = await triggers.on_system_maintenance(
            db, "Scheduled maintenance tonight at 2am.", dispatcher=dispatcher, now=now
        )
        assert notified == 1


class TestTaskAndAppointmentEvents:
    @pytest.mark.asyncio
    async def test_task_created_mentions_deadline(self, db, make_task, dispatcher, senders, now):
        task = make_task(title="Book flights", due_date=datetime(2026, 10, 20, 12))
        undated = make_task(title="Clean garage")

        notification = await triggers.on_task_created(db, task, dispatcher=dispatcher, now=now)
        plain = await triggers.on_task_created(db, undated, dispatcher=dispatcher, now=now)

        assert notification.title == "Task Assignment"
        assert notification.type == "GENERAL"
        assert notification.message.startswith(
            'A new task "Book flights" has been assigned to you with a deadline of 10/20/2026.'
        )
        assert notification.payload == {"taskId": str(task.id), "taskTitle": "Book flights", "reminderType": "created"}
        assert "deadline" not in plain.message
        assert len(senders["email"].calls) == 2

    @pytest.mark.asyncio
    async def test_task_created_once_per_day(self, db, make_task, dispatcher, senders, notifications, now):
        task = make_task(title="Book flights")

        first = await triggers.on_task_created(db, task, dispatcher=dispatcher, now=now)
        again = await triggers.on_task_created(db, task, dispatcher=dispatcher, now=now.replace(hour=23))

        assert again.id == first.id
        assert len(notifications()) == 1
        assert len(senders["email"].calls) == 1

    @pytest.mark.asyncio
    async def test_task_completed_is_not_hidden_by_created(self, db, make_task, dispatcher, notifications, now):
        task = make_task(title="Book flights")

        await triggers.on_task_created(db, task, dispatcher=dispatcher, now=now)
        completed = await triggers.on_task_completed(db, task, dispatcher=dispatcher, now=now)
        repeat = await triggers.on_task_completed(db, task, dispatcher=dispatcher, now=now)

        assert completed.title == "Task Completion Confirmed"
        assert 'completed the task "Book flights"' in completed.message
        assert completed.reminder_type == "completed"
        assert repeat.id == completed.id
        assert [row.reminder_type for row in notifications()] == ["created", "completed"]

    @pytest.mark.asyncio
    async def test_appointment_reminder(self, db, make_appointment, dispatcher, senders, now):
        appointment = make_appointment(title="Vet visit", start_time=datetime(2026, 10, 17, 11), location="Pet Clinic")

        notification = await triggers.on_appointment_reminder(db, appointment, dispatcher=dispatcher, now=now)
        repeat = await triggers.on_appointment_reminder(db, appointment, dispatcher=dispatcher, now=now)

        assert notification.type == "APPOINTMENT_REMINDER"
        assert notification.title == "Upcoming Appointment"
        assert notification.message == (
            'Reminder: You have an appointment "Vet visit" in 1 hour '
            "(10/17/2026, 11:00 AM) at Pet Clinic. Please prepare accordingly."
        )
        assert notification.payload["appointmentId"] == str(appointment.id)
        assert notification.reminder_type == "upcoming"
        assert repeat.id == notification.id
        assert len(senders["email"].calls) == 1

    @pytest.mark.asyncio
    async def test_appointment_cancelled(self, db, make_appointment, dispatcher, notifications, now):
        appointment = make_appointment(title="Vet visit", start_time=datetime(2026, 10, 21, 16, 45))

        await triggers.on_appointment_created(db, appointment, dispatcher=dispatcher, now=now)
        cancelled = await triggers.on_appointment_cancelled(db, appointment, dispatcher=dispatcher, now=now)
        await triggers.on_appointment_cancelled(db, appointment, dispatcher=dispatcher, now=now)

        assert cancelled.title == "Appointment Cancellation"
        assert 'Your appointment "Vet visit" scheduled for 10/21/2026, 4:45 PM has been cancelled.' in cancelled.message
        assert cancelled.payload == {
            "appointmentId": str(appointment.id),
            "appointmentTitle": "Vet visit",
            "reminderType": "cancelled",
        }
        assert [row.title for row in notifications()] == ["Appointment Confirmed", "Appointment Cancellation"]


class TestFinanceAndSystemEvents:
    @pytest.mark.asyncio
    async def test_payment_due_suppressed_per_transaction(self, db, user, dispatcher, senders, notifications, now):
        rent = Transaction(user_id=user.id, title="Rent", amount=1450.5, type="EXPENSE")
        phone = Transaction(user_id=user.id, title="Phone bill", amount=60.0, type="EXPENSE")
        db.add_all([rent, phone])
        db.commit()

        first = await triggers.on_payment_due(db, rent, dispatcher=dispatcher, now=now)
        again = await triggers.on_payment_due(db, rent, dispatcher=dispatcher, now=now.replace(hour=18))
        other = await triggers.on_payment_due(db, phone, dispatcher=dispatcher, now=now)

        assert first.type == "PAYMENT_DUE"
        assert first.title == "Payment Reminder"
        assert first.message.startswith('Payment of $1,450.50 for "Rent" is now due.')
        assert first.payload == {"transactionId": str(rent.id), "amount": 1450.5, "title": "Rent"}
        assert first.resource_key == "transactionId"
        assert first.reminder_type is None
        assert again.id == first.id
        assert other.id != first.id
        assert len(notifications()) == 2
        assert len(senders["email"].calls) == 2

    @pytest.mark.asyncio
    async def test_payment_due_again_next_day(self, db, user, dispatcher, notifications, now):
        rent = Transaction(user_id=user.id, title="Rent", amount=1450.5, type="EXPENSE")
        db.add(rent)
        db.commit()

        await triggers.on_payment_due(db, rent, dispatcher=dispatcher, now=now)
        await triggers.on_payment_due(db, rent, dispatcher=dispatcher, now=now + timedelta(days=1))

        assert len(notifications()) == 2

    @pytest.mark.asyncio
    async def test_welcome_notice_deduplicated_by_text(self, db, user, dispatcher, senders, notifications, now):
        welcome = await triggers.on_user_registered(db, user, dispatcher=dispatcher, now=now)
        repeat = await triggers.on_user_registered(db, user, dispatcher=dispatcher, now=now)

        assert welcome.title == "Welcome to LIA Admin!"
        assert welcome.message == (
            "Welcome to LIA Admin, Ana! Start by exploring the dashboard and setting up your first task."
        )
        assert welcome.payload == {"userId": user.id, "userName": "Ana"}
        assert welcome.resource_key is None
        assert repeat.id == welcome.id
        assert len(senders["email"].calls) == 1

        user.first_name = "Anabel"
        db.commit()
        renamed = await triggers.on_user_registered(db, user, dispatcher=dispatcher, now=now)

        assert renamed.id != welcome.id
        assert len(notifications()) == 2

    @pytest.mark.asyncio
    async def test_welcome_without_first_name(self, db, dispatcher, now):
        nameless = User(email="nameless@example.com")
        db.add(nameless)
        db.commit()

        welcome = await triggers.on_user_registered(db, nameless, dispatcher=dispatcher, now=now)

        assert welcome.message.startswith("Welcome to LIA Admin, there!")
