"""Subtype repair rules for Slack ``message`` events.

Rules are evaluated top to bottom and the first whose predicate matches wins.
A rule returns the repaired record to continue down the forwarding pipeline,
or ``None`` when the message was fully handled (or must be dropped).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace

from slackbridge.bridge.ports import ConversationUnit, Datastore, Redactor
from slackbridge.events.models import NormalizedMessage

logger = logging.getLogger(__name__)

Enricher = Callable[[NormalizedMessage, str | None], Awaitable[str | None]]


@dataclass(slots=True)
class RuleContext:
    room: ConversationUnit
    enrich: Enricher
    datastore: Datastore
    redactor: Redactor


RuleHandler = Callable[[NormalizedMessage, RuleContext], Awaitable[NormalizedMessage | None]]


@dataclass(frozen=True, slots=True)
class SubtypeRule:
    name: str
    applies: Callable[[NormalizedMessage], bool]
    handle: RuleHandler


async def _file_comment(record: NormalizedMessage, ctx: RuleContext) -> NormalizedMessage:
    assert record.comment is not None
    return replace(record, user_id=record.comment.user)


async def _message_changed(
    record: NormalizedMessage, ctx: RuleContext
) -> NormalizedMessage | None:
    edited = record.message
    previous = record.previous_message
    assert edited is not None and previous is not None

    if edited.bot_id is not None and edited.bot_id == ctx.room.bot_id:
        # Our own edit coming back from Slack.
        return None

    previous_text = await ctx.enrich(record, previous.text)
    return replace(
        record,
        user_id=edited.bot_id if edited.bot_id is not None else edited.user,
        text=edited.text,
        previous_message=replace(previous, text=previous_text),
    )


async def _message_deleted(record: NormalizedMessage, ctx: RuleContext) -> None:
    if not record.deleted_ts:
        logger.debug("message_deleted without deleted_ts in %s", record.channel_id)
        return None
    original = await ctx.datastore.get_event_by_slack_id(record.channel_id, record.deleted_ts)
    if original is None:
        logger.debug(
            "No bridged event for deleted message %s in %s",
            record.deleted_ts,
            record.channel_id,
        )
        return None
    await ctx.redactor.redact_event(original.matrix_room_id, original.matrix_event_id)
    return None


async def _message_replied(record: NormalizedMessage, ctx: RuleContext) -> None:
    # Slack also delivers the reply as a plain message event.
    return None


SUBTYPE_RULES: tuple[SubtypeRule, ...] = (
    SubtypeRule(
        name="file_comment",
        applies=lambda r: r.subtype == "file_comment" and r.comment is not None,
        handle=_file_comment,
    ),
    SubtypeRule(
        name="message_changed",
        applies=lambda r: (
            r.subtype == "message_changed"
            and r.message is not None
            and r.previous_message is not None
        ),
        handle=_message_changed,
    ),
    SubtypeRule(
        name="message_deleted",
        applies=lambda r: r.subtype == "message_deleted",
        handle=_message_deleted,
    ),
    SubtypeRule(
        name="message_replied",
        applies=lambda r: r.subtype == "message_replied",
        handle=_message_replied,
    ),
)


def match_rule(
    record: NormalizedMessage, rules: Sequence[SubtypeRule] = SUBTYPE_RULES
) -> SubtypeRule | None:
    for rule in rules:
        if rule.applies(record):
            return rule
    return None


async def apply_subtype_rules(
    record: NormalizedMessage,
    ctx: RuleContext,
    rules: Sequence[SubtypeRule] = SUBTYPE_RULES,
) -> NormalizedMessage | None:
    """Run the first matching rule; records no rule matches pass through unchanged."""
    rule = match_rule(record, rules)
    if rule is None:
        return record
    logger.debug("Applying %s rule to message in %s", rule.name, record.channel_id)
    return await rule.handle(record, ctx)
