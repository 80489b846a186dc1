"""Tests for the message subtype rule chain."""

import asyncio

from slackbridge.bridge.message_rules import (
    SUBTYPE_RULES,
    RuleContext,
    apply_subtype_rules,
    match_rule,
)
from slackbridge.bridge.ports import BridgedEvent
from slackbridge.events.models import MessageBody, NormalizedMessage, SlackComment


class _Room:
    bot_id = "B1"


class _Datastore:
    def __init__(self, events: dict[tuple[str, str], BridgedEvent] | None = None) -> None:
        self.events = events or {}

    async def get_event_by_slack_id(self, channel_id, slack_ts):
        return self.events.get((channel_id, slack_ts))

    async def upsert_room(self, room) -> None:
        pass


class _Redactor:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def redact_event(self, room_id, event_id) -> None:
        self.calls.append((room_id, event_id))


async def _upper(record, text):
    return text.upper() if text else text


def _ctx(datastore=None, redactor=None) -> RuleContext:
    return RuleContext(
        room=_Room(),
        enrich=_upper,
        datastore=datastore or _Datastore(),
        redactor=redactor or _Redactor(),
    )


def _record(**kwargs) -> NormalizedMessage:
    base = {"channel_id": "C1", "team_id": "T1", "team_domain": "acme", "user_id": "U1"}
    base.update(kwargs)
    return NormalizedMessage(**base)


def test_rule_order_is_fixed() -> None:
    assert [rule.name for rule in SUBTYPE_RULES] == [
        "file_comment",
        "message_changed",
        "message_deleted",
        "message_replied",
    ]


def test_unmatched_record_passes_through() -> None:
    record = _record(subtype="me_message", text="waves")
    assert match_rule(record) is None
    assert asyncio.run(apply_subtype_rules(record, _ctx())) is record


def test_file_comment_without_comment_does_not_match() -> None:
    assert match_rule(_record(subtype="file_comment")) is None
    matched = match_rule(_record(subtype="file_comment", comment=SlackComment(user="U2")))
    assert matched is not None and matched.name == "file_comment"


def test_message_changed_enriches_previous_and_takes_edit() -> None:
    record = _record(
        subtype="message_changed",
        user_id=None,
        message=MessageBody(user="U2", text="new text", ts="1.0"),
        previous_message=MessageBody(user="U2", text="old text", ts="1.0"),
    )
    result = asyncio.run(apply_subtype_rules(record, _ctx()))
    assert result is not None
    assert result.user_id == "U2"
    assert result.text == "new text"
    assert result.previous_message is not None
    assert result.previous_message.text == "OLD TEXT"


def test_message_changed_prefers_bot_id_as_actor() -> None:
    record = _record(
        subtype="message_changed",
        message=MessageBody(user="U2", bot_id="B7", text="x"),
        previous_message=MessageBody(text="y"),
    )
    result = asyncio.run(apply_subtype_rules(record, _ctx()))
    assert result is not None and result.user_id == "B7"


def test_message_deleted_redacts_known_event() -> None:
    redactor = _Redactor()
    datastore = _Datastore({("C1", "2.0"): BridgedEvent("!r:hs", "$e", "C1", "2.0")})
    record = _record(subtype="message_deleted", deleted_ts="2.0")
    assert asyncio.run(apply_subtype_rules(record, _ctx(datastore, redactor))) is None
    assert redactor.calls == [("!r:hs", "$e")]


def test_message_deleted_without_ts_is_dropped() -> None:
    redactor = _Redactor()
    record = _record(subtype="message_deleted")
    assert asyncio.run(apply_subtype_rules(record, _ctx(redactor=redactor))) is None
    assert redactor.calls == []


def test_message_replied_is_dropped() -> None:
    assert asyncio.run(apply_subtype_rules(_record(subtype="message_replied", text="x"), _ctx())) is None
