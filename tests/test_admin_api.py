"""
Tests for the admin HTTP API and the in-app notification websocket
"""
import asyncio
import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import FakePlatform, record
from reminder_hub.admin.app import create_app
from reminder_hub.admin.schemas import RuntimeControl
from reminder_hub.core.service import ReminderService
from reminder_hub.storage.base import MemoryReminderStore

AUTH = {"Authorization": "Bearer secret"}


@pytest.fixture
def control():
    return RuntimeControl(shutdown_event=asyncio.Event(), started_at=time.time())


@pytest.fixture
def api_service(clock):
    store = MemoryReminderStore([record("r1", "2024-03-15", "09:00", text="Morning pills", recurrence="daily")])
    return ReminderService(store, FakePlatform(), clock=clock)


@pytest.fixture
def client(control, api_service):
    app = create_app(control, api_service, auth_token="secret")
    with TestClient(app) as test_client:
        yield test_client


class TestAuth:
    def test_healthz_is_public(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.text == "ok"

    def test_health_payload(self, client):
        body = client.get("/api/v1/health").json()
        assert body["status"] == "ok"
        assert body["scheduler_running"] is False

    def test_missing_or_wrong_token(self, client):
        assert client.get("/api/v1/reminders").status_code == 401
        assert client.get("/api/v1/reminders", headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_alternate_token_header(self, client):
        response = client.get("/api/v1/reminders", headers={"X-Reminder-Token": "secret"})
        assert response.status_code == 200

    def test_unconfigured_token_disables_api(self, control, api_service):
        app = create_app(control, api_service, auth_token="")
        with TestClient(app) as unconfigured:
            assert unconfigured.get("/api/v1/reminders", headers=AUTH).status_code == 503

    def test_dashboard_page(self, client):
        response = client.get("/admin")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]


class TestReminders:
    def test_list(self, client):
        body = client.get("/api/v1/reminders", headers=AUTH).json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == "r1"

    def test_create_update_delete(self, client):
        created = client.post(
            "/api/v1/reminders",
            headers=AUTH,
            json={"text": "Water plants", "date": "2024-03-20", "time": "18:30", "recurrence": "weekly"},
        )
        assert created.status_code == 201
        reminder_id = created.json()["id"]

        updated = client.put(f"/api/v1/reminders/{reminder_id}", headers=AUTH, json={"time": "19:00"})
        assert updated.status_code == 200
        assert updated.json()["time"] == "19:00"
        assert updated.json()["recurrence"] == "weekly"

        assert client.delete(f"/api/v1/reminders/{reminder_id}", headers=AUTH).json() == {"ok": True}
        assert client.get("/api/v1/reminders", headers=AUTH).json()["total"] == 1

    @pytest.mark.parametrize("date", ["2024-3-5", "2024-02-30"])
    def test_invalid_date_is_rejected(self, client, date):
        response = client.post("/api/v1/reminders", headers=AUTH, json={"text": "x", "date": date})
        assert response.status_code == 422

    def test_unknown_id(self, client):
        assert client.put("/api/v1/reminders/ghost", headers=AUTH, json={"text": "x"}).status_code == 404
        assert client.post("/api/v1/notifications/ghost/complete", headers=AUTH).status_code == 404

    def test_hide_completed(self, client, api_service):
        client.post("/api/v1/notifications/r1/complete", headers=AUTH)

        body = client.get("/api/v1/reminders", headers=AUTH, params={"include_completed": False}).json()

        assert [item["date"] for item in body["items"]] == ["2024-03-16"]


class TestNotifications:
    def test_tick_then_dismiss(self, client, api_service):
        asyncio.run(api_service.scheduler.tick())
        assert [i["id"] for i in client.get("/api/v1/notifications/active", headers=AUTH).json()["items"]] == ["r1"]

        body = client.post("/api/v1/notifications/r1/dismiss", headers=AUTH).json()

        assert body == {"ok": True, "removed": True, "items": []}

    def test_complete_recurring_returns_next(self, client, api_service):
        asyncio.run(api_service.scheduler.tick())

        body = client.post("/api/v1/notifications/r1/complete", headers=AUTH).json()

        assert body["next"]["date"] == "2024-03-16"
        assert body["next"]["text"] == "Morning pills"
        assert body["items"] == []

    def test_test_reminder_endpoint(self, client):
        created = client.post("/api/v1/reminders/test", headers=AUTH)
        assert created.status_code == 201

        items = client.get("/api/v1/notifications/active", headers=AUTH).json()["items"]
        assert created.json()["id"] in [i["id"] for i in items]

    def test_permission_endpoint(self, client):
        body = client.post("/api/v1/notifications/permission", headers=AUTH).json()
        assert body == {"granted": True, "channel": {"supported": True, "permission": "granted"}}

    def test_websocket_pushes_snapshots(self, client):
        with client.websocket_connect("/api/v1/notifications/ws?token=secret") as ws:
            assert ws.receive_json() == {"items": []}

            created = client.post("/api/v1/reminders/test", headers=AUTH).json()

            pushed = [item["id"] for item in ws.receive_json()["items"]]
            assert set(pushed) <= {"r1", created["id"]}
            assert pushed

    def test_websocket_rejects_bad_token(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/v1/notifications/ws?token=nope") as ws:
                ws.receive_json()


class TestRuntime:
    def test_status(self, client):
        body = client.get("/api/v1/status", headers=AUTH).json()
        assert body["scheduler"]["state"] == "stopped"
        assert "tick_count" in body["runtime"]

    def test_shutdown_sets_event(self, client, control):
        response = client.post("/api/v1/admin/shutdown", headers=AUTH, json={"reason": "maintenance"})

        assert response.json() == {"ok": True, "action": "shutdown", "reason": "maintenance"}
        assert control.shutdown_event.is_set()
