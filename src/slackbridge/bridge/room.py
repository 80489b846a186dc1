"""A Matrix room bridged to one Slack channel."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from slackbridge.bridge.ports import BridgedEvent
from slackbridge.events.models import NormalizedMessage, ReactionRecord, TypingRecord
from slackbridge.matrix.client import MatrixClient

logger = logging.getLogger(__name__)

TYPING_TIMEOUT_MS = 5000


class EventStore(Protocol):
    async def get_event_by_slack_id(
        self, channel_id: str, slack_ts: str
    ) -> BridgedEvent | None: ...

    async def insert_event(
        self,
        matrix_room_id: str,
        matrix_event_id: str,
        slack_channel_id: str,
        slack_ts: str,
    ) -> bool: ...


class BridgedRoom:
    """Conversation unit: Slack channel metadata plus forwarding into Matrix.

    Metadata setters mark the room dirty when a value actually changes;
    ``to_entry()`` snapshots the persistable row and ``mark_clean()`` clears
    the flag once that row has been written.
    """

    def __init__(
        self,
        *,
        matrix_room_id: str,
        slack_channel_id: str,
        matrix: MatrixClient,
        events: EventStore,
        team_id: str | None = None,
        team_domain: str | None = None,
        channel_name: str | None = None,
        bot_id: str | None = None,
        access_token: str | None = None,
        user_prefix: str = "slack_",
        homeserver_domain: str = "localhost",
    ) -> None:
        self.matrix_room_id = matrix_room_id
        self._channel_id = slack_channel_id
        self._matrix = matrix
        self._events = events
        self._team_id = team_id
        self._team_domain = team_domain
        self._channel_name = channel_name
        self._bot_id = bot_id
        self._access_token = access_token
        self._user_prefix = user_prefix
        self._homeserver_domain = homeserver_domain
        self._dirty = False

    @classmethod
    def from_entry(
        cls,
        entry: dict[str, Any],
        *,
        matrix: MatrixClient,
        events: EventStore,
        user_prefix: str = "slack_",
        homeserver_domain: str = "localhost",
    ) -> BridgedRoom:
        return cls(
            matrix_room_id=str(entry["matrix_room_id"]),
            slack_channel_id=str(entry["slack_channel_id"]),
            matrix=matrix,
            events=events,
            team_id=entry.get("slack_team_id"),
            team_domain=entry.get("slack_team_domain"),
            channel_name=entry.get("slack_channel_name"),
            bot_id=entry.get("slack_bot_id"),
            access_token=entry.get("slack_access_token"),
            user_prefix=user_prefix,
            homeserver_domain=homeserver_domain,
        )

    def to_entry(self) -> dict[str, Any]:
        return {
            "matrix_room_id": self.matrix_room_id,
            "slack_channel_id": self._channel_id,
            "slack_team_id": self._team_id,
            "slack_team_domain": self._team_domain,
            "slack_channel_name": self._channel_name,
            "slack_bot_id": self._bot_id,
            "slack_access_token": self._access_token,
        }

    def mark_clean(self) -> None:
        self._dirty = False

    def _set(self, attr: str, value: str | None) -> None:
        if getattr(self, attr) != value:
            setattr(self, attr, value)
            self._dirty = True

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def has_privileged_access(self) -> bool:
        return bool(self._access_token)

    @property
    def team_id(self) -> str | None:
        return self._team_id

    @team_id.setter
    def team_id(self, value: str | None) -> None:
        self._set("_team_id", value)

    @property
    def team_domain(self) -> str | None:
        return self._team_domain

    @team_domain.setter
    def team_domain(self, value: str | None) -> None:
        self._set("_team_domain", value)

    @property
    def channel_name(self) -> str | None:
        return self._channel_name

    @channel_name.setter
    def channel_name(self, value: str | None) -> None:
        self._set("_channel_name", value)

    @property
    def bot_id(self) -> str | None:
        return self._bot_id

    @bot_id.setter
    def bot_id(self, value: str | None) -> None:
        self._set("_bot_id", value)

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @access_token.setter
    def access_token(self, value: str | None) -> None:
        self._set("_access_token", value)

    def ghost_user_id(self, slack_user_id: str | None, team_domain: str) -> str:
        if not slack_user_id:
            return self._matrix.bot_user_id
        localpart = f"{self._user_prefix}{team_domain.lower()}_{slack_user_id.upper()}"
        return f"@{localpart}:{self._homeserver_domain}"

    async def _record_sent(self, event_id: str, slack_ts: str | None) -> None:
        if not event_id or not slack_ts:
            return
        await self._events.insert_event(self.matrix_room_id, event_id, self._channel_id, slack_ts)

    async def forward_message(
        self,
        record: NormalizedMessage,
        team_id: str,
        content: bytes | None = None,
    ) -> None:
        sender = self.ghost_user_id(record.user_id, record.team_domain)

        if content is not None and record.file is not None:
            mimetype = record.file.mimetype or "application/octet-stream"
            uri = await self._matrix.upload(content, mimetype, record.file.name, user_id=sender)
            msgtype = "m.image" if mimetype.startswith("image/") else "m.file"
            event_id = await self._matrix.send_message(
                self.matrix_room_id,
                {
                    "msgtype": msgtype,
                    "body": record.file.title or record.file.name,
                    "url": uri,
                    "info": {"mimetype": mimetype, "size": record.file.size or len(content)},
                },
                user_id=sender,
            )
            await self._record_sent(event_id, record.ts)
            if not record.text:
                return

        if not record.text:
            logger.debug("Nothing to bridge for %s message in %s", record.subtype, self._channel_id)
            return

        if record.subtype == "message_changed" and record.message is not None:
            await self._forward_edit(record, sender)
            return

        body: dict[str, Any] = {
            "msgtype": "m.emote" if record.subtype == "me_message" else "m.text",
            "body": record.text,
        }
        if record.thread_ts and record.thread_ts != record.ts:
            parent = await self._events.get_event_by_slack_id(self._channel_id, record.thread_ts)
            if parent is not None:
                body["m.relates_to"] = {"rel_type": "m.thread", "event_id": parent.matrix_event_id}
        event_id = await self._matrix.send_message(self.matrix_room_id, body, user_id=sender)
        await self._record_sent(event_id, record.ts)

    async def _forward_edit(self, record: NormalizedMessage, sender: str) -> None:
        assert record.message is not None and record.text is not None
        original = None
        if record.message.ts:
            original = await self._events.get_event_by_slack_id(
                self._channel_id, record.message.ts
            )
        if original is None:
            await self._matrix.send_message(
                self.matrix_room_id,
                {"msgtype": "m.text", "body": f"* {record.text}"},
                user_id=sender,
            )
            return
        await self._matrix.send_message(
            self.matrix_room_id,
            {
                "msgtype": "m.text",
                "body": f"* {record.text}",
                "m.new_content": {"msgtype": "m.text", "body": record.text},
                "m.relates_to": {"rel_type": "m.replace", "event_id": original.matrix_event_id},
            },
            user_id=sender,
        )

    async def forward_topic_change(self, record: NormalizedMessage, team_id: str) -> None:
        sender = self.ghost_user_id(record.user_id, record.team_domain)
        topic = record.topic if record.topic is not None else (record.text or "")
        await self._matrix.send_state(
            self.matrix_room_id, "m.room.topic", {"topic": topic}, user_id=sender
        )

    async def forward_reaction_added(self, record: ReactionRecord, team_id: str) -> None:
        if not record.item.ts:
            return
        target = await self._events.get_event_by_slack_id(self._channel_id, record.item.ts)
        if target is None:
            logger.debug("Reaction target %s not bridged in %s", record.item.ts, self._channel_id)
            return
        sender = self.ghost_user_id(record.user_id, record.team_domain)
        await self._matrix.send_reaction(
            self.matrix_room_id,
            target.matrix_event_id,
            f":{record.reaction}:",
            user_id=sender,
        )

    async def forward_typing(self, record: TypingRecord, team_id: str) -> None:
        sender = self.ghost_user_id(record.user_id, record.team_domain)
        await self._matrix.set_typing(self.matrix_room_id, sender, True, TYPING_TIMEOUT_MS)
