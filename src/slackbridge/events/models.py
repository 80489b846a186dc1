"""Slack event model definitions.

Inbound Events API payloads are parsed once into frozen dataclasses, one per
event kind the bridge understands. Anything else becomes an
``UnrecognizedEvent`` so dispatch stays a closed lookup on the class.
Normalized records are derived from these and never share mutable state with
the raw payload.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


def _str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True, slots=True)
class SlackFile:
    id: str
    name: str = ""
    title: str = ""
    mimetype: str = ""
    size: int = 0
    url_private: str = ""
    permalink_public: str = ""
    public_url_shared: bool = False

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> SlackFile:
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            title=str(data.get("title") or ""),
            mimetype=str(data.get("mimetype") or ""),
            size=int(data.get("size") or 0),
            url_private=str(data.get("url_private") or ""),
            permalink_public=str(data.get("permalink_public") or ""),
            public_url_shared=bool(data.get("public_url_shared", False)),
        )


@dataclass(frozen=True, slots=True)
class SlackAttachment:
    fallback: str = ""
    text: str = ""
    title: str = ""


@dataclass(frozen=True, slots=True)
class SlackComment:
    user: str | None
    comment: str = ""


@dataclass(frozen=True, slots=True)
class MessageBody:
    """Inner message snapshot carried by ``message_changed`` events."""

    user: str | None = None
    bot_id: str | None = None
    text: str | None = None
    ts: str | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> MessageBody:
        return cls(
            user=_str(data.get("user")),
            bot_id=_str(data.get("bot_id")),
            text=_str(data.get("text")),
            ts=_str(data.get("ts")),
        )


@dataclass(frozen=True, slots=True)
class ReactionItem:
    type: str = "message"
    channel: str = ""
    ts: str | None = None


@dataclass(frozen=True, slots=True)
class MessageEvent:
    channel: str
    user: str | None = None
    bot_id: str | None = None
    subtype: str | None = None
    text: str | None = None
    ts: str | None = None
    thread_ts: str | None = None
    attachments: tuple[SlackAttachment, ...] | None = None
    file: SlackFile | None = None
    comment: SlackComment | None = None
    message: MessageBody | None = None
    previous_message: MessageBody | None = None
    deleted_ts: str | None = None
    topic: str | None = None
    type: str = "message"


@dataclass(frozen=True, slots=True)
class ReactionEvent:
    type: str
    reaction: str
    item: ReactionItem
    user: str | None = None
    bot_id: str | None = None
    item_user: str | None = None
    event_ts: str | None = None
    channel: str = ""

    @property
    def added(self) -> bool:
        return self.type == "reaction_added"


@dataclass(frozen=True, slots=True)
class ChannelRenameEvent:
    channel: str
    name: str
    created: int | None = None
    type: str = "channel_rename"


@dataclass(frozen=True, slots=True)
class TeamDomainChangeEvent:
    domain: str
    url: str = ""
    channel: str = ""
    type: str = "team_domain_change"


@dataclass(frozen=True, slots=True)
class UserTypingEvent:
    channel: str
    user: str | None = None
    bot_id: str | None = None
    type: str = "user_typing"


@dataclass(frozen=True, slots=True)
class UnrecognizedEvent:
    type: str
    channel: str = ""


RawEvent = (
    MessageEvent
    | ReactionEvent
    | ChannelRenameEvent
    | TeamDomainChangeEvent
    | UserTypingEvent
    | UnrecognizedEvent
)


def _parse_message(payload: dict[str, Any]) -> MessageEvent:
    attachments: tuple[SlackAttachment, ...] | None = None
    raw_attachments = payload.get("attachments")
    if isinstance(raw_attachments, list):
        attachments = tuple(
            SlackAttachment(
                fallback=str(item.get("fallback") or ""),
                text=str(item.get("text") or ""),
                title=str(item.get("title") or ""),
            )
            for item in raw_attachments
            if isinstance(item, dict)
        )

    # Newer deliveries carry ``files``; the bridge only ever shares the first.
    file_payload = payload.get("file")
    if not isinstance(file_payload, dict):
        files = payload.get("files")
        file_payload = files[0] if isinstance(files, list) and files else None
    file = SlackFile.from_payload(file_payload) if isinstance(file_payload, dict) else None

    comment = None
    raw_comment = payload.get("comment")
    if isinstance(raw_comment, dict):
        comment = SlackComment(
            user=_str(raw_comment.get("user")),
            comment=str(raw_comment.get("comment") or ""),
        )

    message = payload.get("message")
    previous = payload.get("previous_message")
    return MessageEvent(
        channel=str(payload.get("channel") or ""),
        user=_str(payload.get("user")),
        bot_id=_str(payload.get("bot_id")),
        subtype=_str(payload.get("subtype")),
        text=_str(payload.get("text")),
        ts=_str(payload.get("ts")),
        thread_ts=_str(payload.get("thread_ts")),
        attachments=attachments,
        file=file,
        comment=comment,
        message=MessageBody.from_payload(message) if isinstance(message, dict) else None,
        previous_message=(
            MessageBody.from_payload(previous) if isinstance(previous, dict) else None
        ),
        deleted_ts=_str(payload.get("deleted_ts")),
        topic=_str(payload.get("topic")),
    )


def _parse_reaction(payload: dict[str, Any]) -> ReactionEvent:
    item = _dict(payload.get("item"))
    return ReactionEvent(
        type=str(payload["type"]),
        reaction=str(payload.get("reaction") or ""),
        item=ReactionItem(
            type=str(item.get("type") or "message"),
            channel=str(item.get("channel") or ""),
            ts=_str(item.get("ts")),
        ),
        user=_str(payload.get("user")),
        bot_id=_str(payload.get("bot_id")),
        item_user=_str(payload.get("item_user")),
        event_ts=_str(payload.get("event_ts")),
        channel=str(payload.get("channel") or ""),
    )


def _parse_channel_rename(payload: dict[str, Any]) -> ChannelRenameEvent:
    # Slack nests the renamed channel; older payloads put id/name at the top.
    channel = payload.get("channel")
    if isinstance(channel, dict):
        created = channel.get("created")
        return ChannelRenameEvent(
            channel=str(channel.get("id") or ""),
            name=str(channel.get("name") or ""),
            created=int(created) if created is not None else None,
        )
    created = payload.get("created")
    return ChannelRenameEvent(
        channel=str(payload.get("id") or channel or ""),
        name=str(payload.get("name") or ""),
        created=int(created) if created is not None else None,
    )


def _parse_domain_change(payload: dict[str, Any]) -> TeamDomainChangeEvent:
    return TeamDomainChangeEvent(
        domain=str(payload.get("domain") or ""),
        url=str(payload.get("url") or ""),
    )


def _parse_typing(payload: dict[str, Any]) -> UserTypingEvent:
    return UserTypingEvent(
        channel=str(payload.get("channel") or ""),
        user=_str(payload.get("user")),
        bot_id=_str(payload.get("bot_id")),
    )


_PARSERS: dict[str, Callable[[dict[str, Any]], RawEvent]] = {
    "message": _parse_message,
    "reaction_added": _parse_reaction,
    "reaction_removed": _parse_reaction,
    "channel_rename": _parse_channel_rename,
    "team_domain_change": _parse_domain_change,
    "user_typing": _parse_typing,
}


def parse_event(payload: dict[str, Any]) -> RawEvent:
    """Parse the ``event`` object of an Events API callback."""
    event_type = str(payload.get("type") or "")
    parser = _PARSERS.get(event_type)
    if parser is None:
        channel = payload.get("channel")
        return UnrecognizedEvent(
            type=event_type,
            channel=channel if isinstance(channel, str) else "",
        )
    return parser(payload)


@dataclass(frozen=True, slots=True)
class NormalizedMessage:
    channel_id: str
    team_id: str
    team_domain: str
    user_id: str | None
    text: str | None = None
    subtype: str | None = None
    ts: str | None = None
    thread_ts: str | None = None
    bot_id: str | None = None
    file: SlackFile | None = None
    attachments: tuple[SlackAttachment, ...] | None = None
    comment: SlackComment | None = None
    message: MessageBody | None = None
    previous_message: MessageBody | None = None
    deleted_ts: str | None = None
    topic: str | None = None


@dataclass(frozen=True, slots=True)
class ReactionRecord:
    channel_id: str
    team_id: str
    team_domain: str
    user_id: str | None
    reaction: str
    item: ReactionItem
    type: str = "reaction_added"


@dataclass(frozen=True, slots=True)
class TypingRecord:
    channel_id: str
    team_id: str
    team_domain: str
    user_id: str | None
