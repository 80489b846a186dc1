"""Tests for the room registry."""

from slackbridge.bridge.registry import RoomRegistry


class _Room:
    def __init__(self, channel_id: str, team_id: str) -> None:
        self.channel_id = channel_id
        self.team_id = team_id


def test_register_and_lookup() -> None:
    registry = RoomRegistry()
    room = _Room("C1", "T1")
    registry.register(room)
    assert registry.get_by_channel("C1") is room
    assert registry.get_by_channel("C2") is None
    assert len(registry) == 1


def test_register_replaces_existing_channel() -> None:
    registry = RoomRegistry()
    registry.register(_Room("C1", "T1"))
    replacement = _Room("C1", "T1")
    registry.register(replacement)
    assert registry.get_by_channel("C1") is replacement
    assert len(registry) == 1


def test_get_by_team_filters() -> None:
    registry = RoomRegistry()
    for channel, team in [("C1", "T1"), ("C2", "T1"), ("C3", "T2")]:
        registry.register(_Room(channel, team))
    assert sorted(room.channel_id for room in registry.get_by_team("T1")) == ["C1", "C2"]
    assert registry.get_by_team("T9") == []
