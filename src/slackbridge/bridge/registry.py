"""Room registry: maps Slack channel ids to bridged rooms."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from slackbridge.bridge.ports import ConversationUnit

logger = logging.getLogger(__name__)


class RoomRegistry:
    """In-memory index of bridged rooms, owned by the application."""

    def __init__(self) -> None:
        self._by_channel: dict[str, ConversationUnit] = {}

    def register(self, room: ConversationUnit) -> None:
        """Register a room, replacing any room already linked to its channel."""
        previous = self._by_channel.get(room.channel_id)
        if previous is not None and previous is not room:
            logger.info("Replacing bridged room for slack channel %s", room.channel_id)
        self._by_channel[room.channel_id] = room

    def get_by_channel(self, channel_id: str) -> ConversationUnit | None:
        return self._by_channel.get(channel_id)

    def get_by_team(self, team_id: str) -> list[ConversationUnit]:
        return [room for room in self._by_channel.values() if room.team_id == team_id]

    def __len__(self) -> int:
        return len(self._by_channel)
