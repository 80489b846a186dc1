"""Protocol interfaces for the collaborators of the Slack event handler."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from slackbridge.events.models import (
    NormalizedMessage,
    ReactionRecord,
    SlackFile,
    TypingRecord,
)
from slackbridge.events.outcome import OutcomeStatus

# respond(status, body, headers)
EventHandlerCallback = Callable[[int, str | None, dict[str, str] | None], None]


@dataclass(frozen=True, slots=True)
class BridgedEvent:
    matrix_room_id: str
    matrix_event_id: str
    slack_channel_id: str
    slack_ts: str


class ConversationUnit(Protocol):
    team_id: str | None
    team_domain: str | None
    bot_id: str | None
    access_token: str | None
    channel_name: str | None

    @property
    def channel_id(self) -> str: ...

    @property
    def has_privileged_access(self) -> bool: ...

    @property
    def is_dirty(self) -> bool: ...

    def to_entry(self) -> dict[str, Any]:
        """Persistable row; leaves the dirty flag alone."""
        ...

    def mark_clean(self) -> None: ...

    async def forward_message(
        self,
        record: NormalizedMessage,
        team_id: str,
        content: bytes | None = None,
    ) -> None: ...

    async def forward_topic_change(self, record: NormalizedMessage, team_id: str) -> None: ...

    async def forward_reaction_added(self, record: ReactionRecord, team_id: str) -> None: ...

    async def forward_typing(self, record: TypingRecord, team_id: str) -> None: ...


class RoomLookup(Protocol):
    def get_by_channel(self, channel_id: str) -> ConversationUnit | None: ...

    def get_by_team(self, team_id: str) -> Sequence[ConversationUnit]: ...


class Datastore(Protocol):
    async def get_event_by_slack_id(
        self, channel_id: str, slack_ts: str
    ) -> BridgedEvent | None: ...

    async def upsert_room(self, room: ConversationUnit) -> None: ...


class MentionResolver(Protocol):
    async def __call__(
        self, record: NormalizedMessage, text: str, access_token: str
    ) -> str: ...


class FileGateway(Protocol):
    async def make_public(self, file: SlackFile, access_token: str) -> SlackFile: ...

    async def download(self, file: SlackFile) -> bytes: ...


class Redactor(Protocol):
    async def redact_event(self, room_id: str, event_id: str) -> None: ...


EndTimer = Callable[[OutcomeStatus], None]


class ObservabilitySink(Protocol):
    def start_timer(self, name: str) -> EndTimer: ...

    def inc_counter(self, name: str, labels: dict[str, str]) -> None: ...
