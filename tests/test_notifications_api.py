"""Tests for the notification dispatch HTTP and websocket endpoints."""

from __future__ import annotations

import time

import pytest
from fakes import RecordingSenders
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from main import create_app
from offerhub_notifications.config import Settings
from offerhub_notifications.infrastructure.notifications import build_notification_services


def _request(user_id: str = "user-1", **kwargs) -> dict:
    payload = {
        "user_id": user_id,
        "type": "new_message",
        "channel": "push",
        "title": "New Message",
        "content": "You have a new message from Ana",
        "priority": "high",
    }
    payload.update(kwargs)
    return payload


def _stored(index: int, **kwargs) -> dict:
    payload = {
        "id": f"n-{index}",
        "user_id": "user-1",
        "type": "new_message",
        "channel": "push",
        "title": "New Message",
        "content": f"Message {index}",
        "status": "delivered",
        "created_at": "2024-03-01T09:00:00+00:00",
    }
    payload.update(kwargs)
    return payload


def _wait_for(condition, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture
def senders() -> RecordingSenders:
    return RecordingSenders()


@pytest.fixture
def services(senders: RecordingSenders):
    return build_notification_services(Settings(), senders=senders)


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client


def test_enqueue_delivers_and_caches_requests(client, senders) -> None:
    response = client.post(
        "/notifications/queue",
        json={"notifications": [_request("user-1"), _request("user-2", channel="sms")]},
    )

    assert response.status_code == 202
    assert response.json()["accepted"] == 2
    assert response.json()["dropped"] == 0
    assert _wait_for(lambda: len(senders.calls) == 2)

    cached = client.get("/notifications/cache/user-2:new_message:sms")
    assert cached.status_code == 200
    assert cached.json()["priority"] == "high"


def test_enqueue_rejects_invalid_requests(client) -> None:
    too_long = client.post(
        "/notifications/queue", json={"notifications": [_request(title="x" * 201)]}
    )
    unknown_type = client.post(
        "/notifications/queue", json={"notifications": [_request(type="carrier_pigeon")]}
    )
    empty = client.post("/notifications/queue", json={"notifications": []})

    assert too_long.status_code == 422
    assert too_long.json()["detail"] == [
        {"index": 0, "errors": ["Title must be less than 200 characters"]}
    ]
    assert unknown_type.status_code == 422
    assert empty.status_code == 422


def test_queue_status_reports_breakers(client) -> None:
    response = client.get("/notifications/queue")

    assert response.status_code == 200
    body = response.json()
    assert body["size"] == 0
    assert body["breakers"] == {
        "push": "closed",
        "email": "closed",
        "in_app": "closed",
        "sms": "closed",
    }


def test_compose_builds_and_optionally_enqueues(client, senders) -> None:
    response = client.post(
        "/notifications/compose",
        json={
            "user_id": "user-1",
            "type": "security_alert",
            "data": {"alertType": "New login"},
            "context": {"severity": "critical"},
            "preferences": [
                {"user_id": "user-1", "type": "security_alert", "channel": "email"},
                {"user_id": "user-1", "type": "security_alert", "channel": "push"},
            ],
            "enqueue": True,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert [n["channel"] for n in body["notifications"]] == ["push"]
    assert body["notifications"][0]["priority"] == "urgent"
    assert body["enqueued"]["accepted"] == 1
    assert _wait_for(lambda: [call[0] for call in senders.calls] == ["push"])


@pytest.mark.parametrize("value", ["25:00", "12:99", "7pm"])
def test_compose_rejects_out_of_range_quiet_hours(client, value) -> None:
    response = client.post(
        "/notifications/compose",
        json={
            "user_id": "user-1",
            "type": "new_message",
            "preferences": [
                {
                    "user_id": "user-1",
                    "type": "new_message",
                    "channel": "push",
                    "quiet_hours_start": value,
                    "quiet_hours_end": "08:00",
                }
            ],
        },
    )

    assert response.status_code == 422


def test_compose_accepts_single_digit_hours(client) -> None:
    response = client.post(
        "/notifications/compose",
        json={
            "user_id": "user-1",
            "type": "new_message",
            "preferences": [
                {
                    "user_id": "user-1",
                    "type": "new_message",
                    "channel": "push",
                    "quiet_hours_start": "23:30",
                    "quiet_hours_end": "7:00",
                }
            ],
        },
    )

    assert response.status_code == 200


def test_stats_endpoint(client) -> None:
    notifications = [
        _stored(0, is_read=True, read_at="2024-03-01T09:10:00+00:00"),
        _stored(1, is_read=True, read_at="2024-03-01T09:20:00+00:00"),
        _stored(2, is_dismissed=True, dismissed_at="2024-03-01T09:05:00+00:00"),
        _stored(3),
        _stored(4, status="failed"),
    ]

    response = client.post("/notifications/stats", json={"notifications": notifications})

    assert response.status_code == 200
    body = response.json()
    assert body["total_notifications"] == 5
    assert body["engagement_metrics"]["open_rate"] == 0.6
    assert body["engagement_metrics"]["avg_response_time"] == 900
    assert body["delivery_metrics"]["failure_rate"] == 0.2


def test_export_endpoint_formats(client) -> None:
    payload = {"notifications": [_stored(0)]}

    csv_response = client.post("/notifications/export", json=payload)
    json_response = client.post("/notifications/export?format=json", json=payload)
    bad_format = client.post("/notifications/export?format=xlsx", json=payload)

    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert csv_response.text.splitlines()[0].startswith('"ID","Type","Channel"')
    assert json_response.json()[0]["id"] == "n-0"
    assert bad_format.status_code == 422


def test_metric_and_cache_lookups(client) -> None:
    assert client.get("/notifications/metrics/processing_time").status_code == 404
    assert client.get("/notifications/cache/missing").status_code == 404

    client.post("/notifications/queue", json={"notifications": [_request()]})
    response = client.get("/notifications/metrics/queue_size")

    assert response.status_code == 200
    assert response.json()["name"] == "queue_size"
    assert response.json()["count"] >= 1
    assert "queue_size" in client.get("/notifications/metrics").json()


def test_websocket_receives_in_app_notifications() -> None:
    app = create_app(build_notification_services(Settings()))

    with TestClient(app) as client:
        with client.websocket_connect("/notifications/ws?user_id=user-7") as websocket:
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

            client.post(
                "/notifications/queue",
                json={"notifications": [_request("user-7", channel="in_app")]},
            )
            message = websocket.receive_json()

    assert message["type"] == "notification"
    assert message["data"]["user_id"] == "user-7"
    assert message["data"]["channel"] == "in_app"


def test_websocket_requires_user_id(client) -> None:
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/notifications/ws") as websocket:
            websocket.receive_json()
