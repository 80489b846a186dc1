"""Slack Events API handler.

Acknowledges each delivery immediately, then classifies the event and hands
a normalized record to the bridged room linked to the Slack channel. Every
event ends with exactly one outcome recorded on the ``remote_request_seconds``
timer; nothing raised while processing escapes ``handle``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from slackbridge.bridge.message_rules import RuleContext, apply_subtype_rules
from slackbridge.bridge.ports import (
    ConversationUnit,
    Datastore,
    EndTimer,
    EventHandlerCallback,
    FileGateway,
    MentionResolver,
    ObservabilitySink,
    Redactor,
    RoomLookup,
)
from slackbridge.errors import BridgeError, UnknownChannelError, UnknownEventError
from slackbridge.events.models import (
    ChannelRenameEvent,
    MessageEvent,
    NormalizedMessage,
    ReactionEvent,
    ReactionRecord,
    TeamDomainChangeEvent,
    TypingRecord,
    UserTypingEvent,
    parse_event,
)
from slackbridge.events.outcome import EventOutcome
from slackbridge.logging import bound_context
from slackbridge.observability.metrics import RECEIVED_MESSAGES, REMOTE_REQUEST_SECONDS

logger = logging.getLogger(__name__)

HTTP_OK = 200

TOPIC_SUBTYPES = frozenset({"channel_topic", "group_topic"})


class SlackEventHandler:
    # Event types handled in ``handle``; the Slack app must subscribe to these.
    SUPPORTED_EVENTS: tuple[str, ...] = (
        "message",
        "reaction_added",
        "reaction_removed",
        "team_domain_change",
        "channel_rename",
        "user_typing",
    )

    def __init__(
        self,
        *,
        rooms: RoomLookup,
        datastore: Datastore,
        mention_resolver: MentionResolver,
        file_gateway: FileGateway,
        redactor: Redactor,
        sink: ObservabilitySink,
    ) -> None:
        self._rooms = rooms
        self._datastore = datastore
        self._resolve_mentions = mention_resolver
        self._files = file_gateway
        self._redactor = redactor
        self._sink = sink
        self._dispatch: dict[type, Callable[[Any, str], Awaitable[None]]] = {
            MessageEvent: self._handle_message_event,
            ReactionEvent: self._handle_reaction,
            ChannelRenameEvent: self._handle_channel_rename,
            TeamDomainChangeEvent: self._handle_domain_change,
            UserTypingEvent: self._handle_typing,
        }

    def on_verify_url(self, challenge: str, respond: EventHandlerCallback) -> None:
        respond(
            HTTP_OK,
            json.dumps({"challenge": challenge}),
            {"Content-Type": "application/json"},
        )

    async def handle(
        self,
        payload: dict[str, Any],
        team_id: str,
        respond: EventHandlerCallback,
    ) -> EventOutcome:
        """Handle one Slack event delivery.

        The ack goes out before anything else: Slack re-sends events that are
        not acknowledged within 3 seconds.
        """
        try:
            end_timer = self._sink.start_timer(REMOTE_REQUEST_SECONDS)
            respond(HTTP_OK, "OK", None)

            event_type = str(payload.get("type") or "")
            channel = payload.get("channel")
            with bound_context(
                team_id=team_id,
                event_type=event_type,
                channel=channel if isinstance(channel, str) else None,
            ):
                logger.debug("Received slack event %s for team %s", event_type, team_id)
                outcome = await self._process(payload, team_id)
                self._record_outcome(outcome, end_timer)
            return outcome
        except Exception as exc:
            logger.exception("SlackEventHandler.handle failed")
            return EventOutcome.failed(repr(exc))

    async def _process(self, payload: dict[str, Any], team_id: str) -> EventOutcome:
        try:
            event = parse_event(payload)
            handler = self._dispatch.get(type(event))
            if handler is None:
                raise UnknownEventError(event.type)
            await handler(event, team_id)
        except UnknownChannelError as exc:
            logger.warning(
                "Ignoring message from unrecognised slack channel id: %s (%s)",
                exc.channel_id,
                team_id,
            )
            self._sink.inc_counter(RECEIVED_MESSAGES, {"side": "remote"})
            return EventOutcome.dropped("unknown_channel")
        except UnknownEventError as exc:
            logger.debug("Ignoring unsupported slack event type %r", exc.event_type)
            return EventOutcome.dropped("unknown_event")
        except Exception as exc:
            logger.exception("Failed to handle slack event")
            return EventOutcome.failed(repr(exc))
        return EventOutcome.success()

    def _record_outcome(self, outcome: EventOutcome, end_timer: EndTimer) -> None:
        end_timer(outcome.status)

    def _room_for(self, channel_id: str) -> ConversationUnit:
        room = self._rooms.get_by_channel(channel_id)
        if room is None:
            raise UnknownChannelError(channel_id)
        return room

    @staticmethod
    def _team_domain(room: ConversationUnit, team_id: str) -> str:
        return room.team_domain or room.team_id or team_id

    def _normalize_message(
        self, event: MessageEvent, room: ConversationUnit, team_id: str
    ) -> NormalizedMessage:
        return NormalizedMessage(
            channel_id=event.channel,
            team_id=team_id,
            team_domain=self._team_domain(room, team_id),
            user_id=event.user or event.bot_id,
            text=event.text,
            subtype=event.subtype,
            ts=event.ts,
            thread_ts=event.thread_ts,
            bot_id=event.bot_id,
            file=event.file,
            attachments=event.attachments,
            comment=event.comment,
            message=event.message,
            previous_message=event.previous_message,
            deleted_ts=event.deleted_ts,
            topic=event.topic,
        )

    async def _enrich(
        self, record: NormalizedMessage, text: str | None, access_token: str
    ) -> str | None:
        if not text:
            return text
        try:
            return await self._resolve_mentions(record, text, access_token)
        except Exception:
            logger.warning("Mention resolution failed in %s", record.channel_id, exc_info=True)
            return text

    async def _handle_message_event(self, event: MessageEvent, team_id: str) -> None:
        room = self._room_for(event.channel)

        if event.subtype == "bot_message" and (not room.bot_id or event.bot_id == room.bot_id):
            return

        # Only count received messages that aren't self-reflections
        self._sink.inc_counter(RECEIVED_MESSAGES, {"side": "remote"})

        record = self._normalize_message(event, room, team_id)

        if not room.has_privileged_access or not room.access_token:
            # Without a token we cannot look anything up, so send the text as-is.
            logger.warning("No slack token for %s", room.team_domain or room.channel_id)
            await room.forward_message(record, team_id)
            return
        token = room.access_token

        if record.subtype in TOPIC_SUBTYPES:
            await room.forward_topic_change(record, team_id)
            return

        # Bot messages and unfurls carry their content in attachments; only
        # the first one is bridged.
        if record.attachments:
            text = record.attachments[0].fallback
            if not text:
                return
            record = replace(record, text=await self._enrich(record, text, token))
            await room.forward_message(record, team_id)
            return
        if record.attachments is not None and not record.text:
            return

        async def enrich(rec: NormalizedMessage, text: str | None) -> str | None:
            return await self._enrich(rec, text, token)

        repaired = await apply_subtype_rules(
            record,
            RuleContext(
                room=room,
                enrich=enrich,
                datastore=self._datastore,
                redactor=self._redactor,
            ),
        )
        if repaired is None:
            return
        record = repaired

        # The rules await lookups, so the token may have been revoked meanwhile.
        if not room.has_privileged_access or not room.access_token:
            logger.warning("Slack token for %s went away mid-event", room.channel_id)
            await room.forward_message(record, team_id)
            return
        token = room.access_token

        content: bytes | None = None
        if record.subtype == "file_share" and record.file is not None:
            record, content = await self._fetch_shared_file(record, token)

        record = replace(record, text=await self._enrich(record, record.text, token))
        await room.forward_message(record, team_id, content)

    async def _fetch_shared_file(
        self, record: NormalizedMessage, access_token: str
    ) -> tuple[NormalizedMessage, bytes | None]:
        assert record.file is not None
        try:
            shared = await self._files.make_public(record.file, access_token)
            content = await self._files.download(shared)
        except Exception as exc:
            # Couldn't get a shareable URL for the file; it goes over as text.
            logger.info("Could not fetch shared file %s: %s", record.file.id, exc)
            return record, None
        return replace(record, file=shared), content

    async def _handle_reaction(self, event: ReactionEvent, team_id: str) -> None:
        # Reactions store the channel in the item
        channel = event.item.channel
        room = self._room_for(channel)

        record = ReactionRecord(
            channel_id=channel,
            team_id=team_id,
            team_domain=self._team_domain(room, team_id),
            user_id=event.user or event.bot_id,
            reaction=event.reaction,
            item=event.item,
            type=event.type,
        )

        if event.added:
            await room.forward_reaction_added(record, team_id)
            return
        # TODO: bridge reaction_removed once sent reactions are stored with their
        # Matrix event ids so they can be redacted.
        logger.debug("Not bridging removal of :%s: in %s", event.reaction, channel)

    async def _handle_domain_change(self, event: TeamDomainChangeEvent, team_id: str) -> None:
        rooms = list(self._rooms.get_by_team(team_id))

        async def _update(room: ConversationUnit) -> None:
            room.team_domain = event.domain
            if room.is_dirty:
                await self._datastore.upsert_room(room)

        results = await asyncio.gather(*(_update(room) for room in rooms), return_exceptions=True)
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            raise BridgeError(
                f"{len(failures)} of {len(rooms)} rooms failed to update domain"
            ) from failures[0]

    async def _handle_channel_rename(self, event: ChannelRenameEvent, team_id: str) -> None:
        room = self._room_for(event.channel)

        room.channel_name = f"{self._team_domain(room, team_id)}.#{event.name}"
        if room.is_dirty:
            await self._datastore.upsert_room(room)

    async def _handle_typing(self, event: UserTypingEvent, team_id: str) -> None:
        room = self._room_for(event.channel)
        record = TypingRecord(
            channel_id=event.channel,
            team_id=team_id,
            team_domain=self._team_domain(room, team_id),
            user_id=event.user or event.bot_id,
        )
        await room.forward_typing(record, team_id)
