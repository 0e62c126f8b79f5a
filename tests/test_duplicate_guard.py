"""Same-day duplicate suppression"""

from datetime import timedelta

from lifeadmin.domain.notifications import NotificationRepository
from lifeadmin.services.duplicate_guard import find_duplicate, should_suppress


def _store(db, user, now, data=None, title="Overdue Task Alert", message="msg", kind="TASK_REMINDER"):
    return NotificationRepository.create_notification(
        db, user.id, kind, title, message, data=data, created_at=now
    )


class TestDuplicateGuard:
    def test_same_resource_same_day_is_suppressed(self, db, user, now):
        _store(db, user, now, {"taskId": 7, "reminderType": "overdue"})
        assert should_suppress(db, user.id, "TASK_REMINDER", "taskId", 7, "overdue", now=now)
        # ids are compared as strings
        assert should_suppress(db, user.id, "TASK_REMINDER", "taskId", "7", "overdue", now=now)

    def test_other_resource_is_not_suppressed(self, db, user, now):
        _store(db, user, now, {"taskId": 7, "reminderType": "overdue"})
        assert not should_suppress(db, user.id, "TASK_REMINDER", "taskId", 17, "overdue", now=now)
        assert not should_suppress(db, user.id, "TASK_REMINDER", "appointmentId", 7, "overdue", now=now)

    def test_different_reminder_kind_is_not_suppressed(self, db, user, now):
        _store(db, user, now, {"taskId": 7, "reminderType": "overdue"})
        assert not should_suppress(db, user.id, "TASK_REMINDER", "taskId", 7, "day_before", now=now)

    def test_untagged_check_matches_any_kind(self, db, user, now):
        _store(db, user, now, {"taskId": 7, "reminderType": "overdue"})
        assert should_suppress(db, user.id, "TASK_REMINDER", "taskId", 7, now=now)

    def test_yesterday_does_not_count(self, db, user, now):
        _store(db, user, now - timedelta(days=1), {"taskId": 7, "reminderType": "overdue"})
        assert not should_suppress(db, user.id, "TASK_REMINDER", "taskId", 7, "overdue", now=now)

    def test_other_type_and_user_do_not_count(self, db, user, now):
        _store(db, user, now, {"taskId": 7}, kind="GENERAL")
        assert not should_suppress(db, user.id, "TASK_REMINDER", "taskId", 7, now=now)
        assert not should_suppress(db, user.id + 1, "GENERAL", "taskId", 7, now=now)

    def test_without_resource_matches_title_and_message(self, db, user, now):
        existing = _store(db, user, now, {"type": "maintenance"}, title="System Maintenance", message="Down at 2am")
        found = find_duplicate(
            db, user.id, "TASK_REMINDER", title="System Maintenance", message="Down at 2am", now=now
        )
        assert found.id == existing.id
        assert not should_suppress(
            db, user.id, "TASK_REMINDER", title="System Maintenance", message="Down at 3am", now=now
        )
