import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from slackbridge.db.connection import get_conn
from slackbridge.db.datastore import SqliteDatastore
from slackbridge.db.queries import get_event_by_slack_id
from slackbridge.main import app
from slackbridge.matrix.client import MatrixClient
from slackbridge.tasks import get_task_runner


@pytest.fixture
def linked_room() -> None:
    SqliteDatastore().upsert_room_entry(
        {
            "matrix_room_id": "!room:matrix.test",
            "slack_channel_id": "C1",
            "slack_team_id": "T1",
            "slack_team_domain": "acme",
            "slack_channel_name": "acme.#general",
            "slack_bot_id": "B1",
            "slack_access_token": None,
        }
    )


@pytest.fixture
def matrix_calls(monkeypatch) -> list[tuple[str, str]]:
    calls: list[tuple[str, str]] = []

    async def fake_request(self, method, path, **kwargs):
        calls.append((method, path))
        return {"event_id": "$bridged"}

    monkeypatch.setattr(MatrixClient, "_request", fake_request)
    return calls


def _callback(event: dict[str, object]) -> dict[str, object]:
    return {"type": "event_callback", "team_id": "T1", "event_id": "Ev1", "event": event}


def test_url_verification_echoes_challenge() -> None:
    with TestClient(app) as client:
        response = client.post("/slack/events", json={"type": "url_verification", "challenge": "xyz"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"challenge": "xyz"}


def test_malformed_json_is_rejected() -> None:
    with TestClient(app) as client:
        response = client.post(
            "/slack/events", content=b"{not json", headers={"Content-Type": "application/json"}
        )
    assert response.status_code == 400


def test_other_envelopes_are_ignored() -> None:
    with TestClient(app) as client:
        response = client.post("/slack/events", json={"type": "app_rate_limited"})
    assert response.status_code == 200
    assert response.json() == {"ignored": True}


def test_events_after_runner_shutdown_are_refused() -> None:
    with TestClient(app) as client:
        asyncio.run(get_task_runner().shutdown(timeout_s=1))
        response = client.post(
            "/slack/events",
            json=_callback({"type": "message", "channel": "C1", "user": "U1", "text": "late"}),
        )
    assert response.status_code == 503
    assert response.json() == {"detail": "shutting_down"}


def test_event_for_unknown_channel_is_acked_and_counted() -> None:
    with TestClient(app) as client:
        response = client.post(
            "/slack/events",
            json=_callback({"type": "message", "channel": "C404", "user": "U1", "text": "hi"}),
        )
        assert response.status_code == 200
        assert response.text == "OK"
        metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert 'received_messages_total{side="remote"} 1.0' in metrics.text
    assert 'remote_request_seconds_count{outcome="dropped"} 1.0' in metrics.text


def test_message_is_bridged_after_ack(linked_room, matrix_calls) -> None:
    with TestClient(app) as client:
        response = client.post(
            "/slack/events",
            json=_callback(
                {"type": "message", "channel": "C1", "user": "U1", "text": "hello", "ts": "1700000000.000100"}
            ),
        )
        assert response.status_code == 200
        assert response.text == "OK"
        row = None
        deadline = time.monotonic() + 5
        while row is None and time.monotonic() < deadline:
            with get_conn() as conn:
                row = get_event_by_slack_id(conn, "C1", "1700000000.000100")
            if row is None:
                time.sleep(0.02)
    assert row is not None
    assert row["matrix_event_id"] == "$bridged"
    assert any("/send/m.room.message/" in path for _, path in matrix_calls)


def test_healthz_reports_rooms(linked_room) -> None:
    with TestClient(app) as client:
        response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "rooms": 1, "tasks_in_flight": 0}


def test_events_rejected_before_startup() -> None:
    app.state.event_handler = None
    client = TestClient(app)
    response = client.post("/slack/events", json={"type": "url_verification", "challenge": "x"})
    assert response.status_code == 503
