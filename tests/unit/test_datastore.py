"""Tests for the async SQLite datastore."""

import asyncio

import pytest

from slackbridge.db.datastore import SqliteDatastore
from slackbridge.errors import DatastoreError


class _Room:
    channel_id = "C1"

    def __init__(self) -> None:
        self.entry_calls = 0
        self.is_dirty = True

    def to_entry(self) -> dict[str, object]:
        self.entry_calls += 1
        return {
            "matrix_room_id": "!abc:matrix.test",
            "slack_channel_id": "C1",
            "slack_team_id": "T1",
            "slack_team_domain": "acme",
        }

    def mark_clean(self) -> None:
        self.is_dirty = False


def test_upsert_room_persists_entry() -> None:
    store = SqliteDatastore()
    room = _Room()
    asyncio.run(store.upsert_room(room))
    assert room.entry_calls == 1
    assert room.is_dirty is False
    rooms = store.list_rooms()
    assert [r["slack_channel_id"] for r in rooms] == ["C1"]
    assert store.delete_room("C1") is True
    assert store.list_rooms() == []


def test_failed_upsert_leaves_room_dirty(tmp_path) -> None:
    store = SqliteDatastore(str(tmp_path / "unmigrated.db"))
    room = _Room()
    with pytest.raises(DatastoreError):
        asyncio.run(store.upsert_room(room))
    assert room.is_dirty is True


def test_event_lookup_returns_bridged_event() -> None:
    store = SqliteDatastore()

    async def scenario():
        await store.insert_event("!abc:matrix.test", "$e1", "C1", "1.0")
        return await store.get_event_by_slack_id("C1", "1.0"), await store.get_event_by_slack_id("C1", "2.0")

    found, missing = asyncio.run(scenario())
    assert found is not None
    assert found.matrix_event_id == "$e1"
    assert found.matrix_room_id == "!abc:matrix.test"
    assert missing is None


def test_sqlite_errors_become_datastore_errors(tmp_path) -> None:
    store = SqliteDatastore(str(tmp_path / "empty.db"))
    with pytest.raises(DatastoreError):
        store.list_rooms()
