"""Unit tests for db/queries.py helpers."""

from slackbridge.db.connection import get_conn
from slackbridge.db.migrations.runner import run_migrations
from slackbridge.db.queries import (
    delete_room,
    get_event_by_slack_id,
    get_room_by_channel,
    insert_event,
    list_rooms,
    upsert_room,
)


def _entry(**overrides) -> dict[str, object]:
    entry: dict[str, object] = {
        "matrix_room_id": "!abc:matrix.test",
        "slack_channel_id": "C1",
        "slack_team_id": "T1",
        "slack_team_domain": "acme",
        "slack_channel_name": "acme.#general",
        "slack_bot_id": "B1",
        "slack_access_token": "xoxb-1",
    }
    entry.update(overrides)
    return entry


def test_migrations_are_idempotent() -> None:
    assert run_migrations() == []


def test_upsert_room_insert_then_update() -> None:
    with get_conn() as conn:
        upsert_room(conn, _entry())
        upsert_room(conn, _entry(slack_team_domain="acme-corp"))
        rooms = list_rooms(conn)
    assert len(rooms) == 1
    assert rooms[0]["slack_team_domain"] == "acme-corp"
    assert rooms[0]["slack_bot_id"] == "B1"


def test_get_room_by_channel_and_delete() -> None:
    with get_conn() as conn:
        upsert_room(conn, _entry())
        room = get_room_by_channel(conn, "C1")
        assert room is not None
        assert room["matrix_room_id"] == "!abc:matrix.test"
        assert delete_room(conn, "C1") is True
        assert delete_room(conn, "C1") is False
        assert get_room_by_channel(conn, "C1") is None


def test_insert_event_is_unique_per_slack_ts() -> None:
    with get_conn() as conn:
        assert insert_event(conn, "!abc:matrix.test", "$one", "C1", "1700000000.000100") is True
        assert insert_event(conn, "!abc:matrix.test", "$two", "C1", "1700000000.000100") is False
        row = get_event_by_slack_id(conn, "C1", "1700000000.000100")
        assert row is not None
        assert row["matrix_event_id"] == "$one"
        assert get_event_by_slack_id(conn, "C2", "1700000000.000100") is None
