"""Ops endpoints for the notification sweeps"""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from lifeadmin import config
from lifeadmin.database import get_db
from lifeadmin.domain.notifications import NotificationRepository
from lifeadmin.routes import status_router
from lifeadmin.routes.status_automation import get_email_sender, get_scheduler
from lifeadmin.services.scheduler import FULL_SEQUENCE, NotificationScheduler

HEADERS = {"X-Ops-Key": "ops-secret"}


@pytest.fixture
def email_calls():
    return []


@pytest.fixture
def client(session_factory, dispatcher, now, email_calls, monkeypatch):
    monkeypatch.setattr(config, "OPS_API_KEY", "ops-secret")

    async def fake_email(address, notification, logo_url=None):
        email_calls.append((address, notification.title, notification.type))
        return {"success": True, "message_id": "re_test"}

    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    scheduler = NotificationScheduler(session_factory, dispatcher=dispatcher, clock=lambda: now)

    app = FastAPI()
    app.include_router(status_router)
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_email_sender] = lambda: fake_email

    with TestClient(app) as test_client:
        yield test_client


class TestOpsAuth:
    def test_missing_key_is_rejected(self, client):
        assert client.post("/ops/notifications/run").status_code == 401
        assert client.post("/ops/notifications/run", headers={"X-Ops-Key": "wrong"}).status_code == 401

    def test_disabled_without_configured_key(self, client, monkeypatch):
        monkeypatch.setattr(config, "OPS_API_KEY", None)
        response = client.get("/ops/notifications/count", headers=HEADERS)
        assert response.status_code == 503


class TestOpsEndpoints:
    def test_run_all_sweeps(self, client, make_task, now):
        make_task(title="Due today", due_date=now.replace(hour=18))

        response = client.post("/ops/notifications/run", headers=HEADERS)

        assert response.status_code == 200
        results = response.json()["results"]
        assert list(results) == list(FULL_SEQUENCE)
        assert results["tasks_to_in_progress"]["updated_count"] == 1

    def test_run_single_sweep(self, client, make_task, now):
        make_task(title="Late", due_date=now.replace(hour=1))

        response = client.post("/ops/notifications/sweeps/overdue_tasks", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "name": "overdue_tasks",
            "result": {"sent_count": 1, "error_count": 0, "total_found": 1},
        }

    def test_unknown_sweep_is_404(self, client):
        response = client.post("/ops/notifications/sweeps/does_not_exist", headers=HEADERS)
        assert response.status_code == 404

    def test_list_sweeps(self, client):
        response = client.get("/ops/notifications/sweeps", headers=HEADERS)
        assert "task_creation_follow_ups" in response.json()["sweepers"]

    def test_counts(self, client, db, user, now):
        NotificationRepository.create_notification(db, user.id, "GENERAL", "One", "a", created_at=now)
        second = NotificationRepository.create_notification(db, user.id, "GENERAL", "Two", "b", created_at=now)
        second.is_read = True
        db.commit()

        all_users = client.get("/ops/notifications/count", headers=HEADERS).json()
        other_user = client.get(f"/ops/notifications/count?user_id={user.id + 1}", headers=HEADERS).json()

        assert all_users == {"user_id": None, "total": 2, "unread": 1}
        assert other_user["total"] == 0

    def test_send_test_email(self, client, email_calls):
        response = client.post(
            "/ops/notifications/test-email",
            headers=HEADERS,
            json={"to": "ops@example.com", "type": "TASK_REMINDER"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message_id": "re_test", "error": None}
        assert email_calls == [("ops@example.com", "Test Notification", "TASK_REMINDER")]

    def test_test_email_rejects_bad_address(self, client, email_calls):
        response = client.post("/ops/notifications/test-email", headers=HEADERS, json={"to": "nope"})
        assert response.status_code == 422
        assert email_calls == []


class TestSchedulerDependency:
    def _request(self, app):
        return Request({"type": "http", "app": app, "headers": []})

    def test_unstarted_scheduler_is_shared_between_requests(self):
        app = FastAPI()

        first = get_scheduler(self._request(app))
        second = get_scheduler(self._request(app))

        assert isinstance(first, NotificationScheduler)
        assert second is first
        assert app.state.notification_scheduler is first

    def test_started_scheduler_is_reused(self, session_factory):
        app = FastAPI()
        started = NotificationScheduler(session_factory)
        app.state.notification_scheduler = started

        assert get_scheduler(self._request(app)) is started
