"""Rewrite Slack's angle-bracket markup into plain readable text.

Slack encodes mentions and links as ``<@U123>``, ``<#C123|general>``,
``<!here>`` and ``<https://example.com|label>``. User and channel ids are
looked up through the Web API; a failed lookup leaves the token untouched.
"""

from __future__ import annotations

import asyncio
import html
import logging
import re
from collections import OrderedDict

from slackbridge.errors import SlackApiError
from slackbridge.events.models import NormalizedMessage
from slackbridge.slack.client import SlackWebClient

logger = logging.getLogger(__name__)

USER_RE = re.compile(r"<@([UW][A-Z0-9]+)(?:\|([^>]*))?>")
CHANNEL_RE = re.compile(r"<#([CG][A-Z0-9]+)(?:\|([^>]*))?>")
SPECIAL_RE = re.compile(r"<!(here|channel|everyone)(?:\|[^>]*)?>")
SUBTEAM_RE = re.compile(r"<!subteam\^[A-Z0-9]+(?:\|([^>]*))?>")
LINK_RE = re.compile(r"<((?:https?|mailto):[^|>]+)(?:\|([^>]*))?>")


def _display_name(user: dict[str, object]) -> str | None:
    profile = user.get("profile")
    if isinstance(profile, dict):
        for key in ("display_name", "real_name"):
            value = profile.get(key)
            if isinstance(value, str) and value.strip():
                return value
    for key in ("real_name", "name"):
        value = user.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def replace_links(text: str) -> str:
    def _link(match: re.Match[str]) -> str:
        url, label = match.group(1), match.group(2)
        if url.startswith("mailto:"):
            return label or url[len("mailto:"):]
        if not label or label == url or url.endswith(f"//{label}"):
            return url
        return f"{label} ({url})"

    text = SPECIAL_RE.sub(lambda m: f"@{m.group(1)}", text)
    text = SUBTEAM_RE.sub(lambda m: m.group(1) or "@team", text)
    return LINK_RE.sub(_link, text)


class NameCache:
    """Least-recently-used map of (team, id) to a resolved name."""

    def __init__(self, max_size: int) -> None:
        self._max_size = max(1, max_size)
        self._names: OrderedDict[tuple[str, str], str] = OrderedDict()

    def get(self, key: tuple[str, str]) -> str | None:
        name = self._names.get(key)
        if name is not None:
            self._names.move_to_end(key)
        return name

    def put(self, key: tuple[str, str], name: str) -> None:
        self._names[key] = name
        self._names.move_to_end(key)
        while len(self._names) > self._max_size:
            self._names.popitem(last=False)

    def __len__(self) -> int:
        return len(self._names)


class SlackMentionResolver:
    def __init__(self, client: SlackWebClient, *, cache_size: int = 2048) -> None:
        self._client = client
        self._user_names = NameCache(cache_size)
        self._channel_names = NameCache(cache_size)

    async def _user_name(self, team_id: str, user_id: str, token: str) -> str | None:
        key = (team_id, user_id)
        cached = self._user_names.get(key)
        if cached is not None:
            return cached
        try:
            user = await self._client.users_info(token, user_id)
        except SlackApiError as exc:
            logger.debug("users.info failed for %s: %s", user_id, exc)
            return None
        name = _display_name(user)
        if name:
            self._user_names.put(key, name)
        return name

    async def _channel_name(self, team_id: str, channel_id: str, token: str) -> str | None:
        key = (team_id, channel_id)
        cached = self._channel_names.get(key)
        if cached is not None:
            return cached
        try:
            channel = await self._client.conversations_info(token, channel_id)
        except SlackApiError as exc:
            logger.debug("conversations.info failed for %s: %s", channel_id, exc)
            return None
        name = channel.get("name")
        if isinstance(name, str) and name:
            self._channel_names.put(key, name)
            return name
        return None

    async def __call__(self, record: NormalizedMessage, text: str, access_token: str) -> str:
        user_ids = sorted({m.group(1) for m in USER_RE.finditer(text)})
        channel_ids = sorted(
            {m.group(1) for m in CHANNEL_RE.finditer(text) if not m.group(2)}
        )
        user_names = await asyncio.gather(
            *(self._user_name(record.team_id, uid, access_token) for uid in user_ids)
        )
        channel_names = await asyncio.gather(
            *(self._channel_name(record.team_id, cid, access_token) for cid in channel_ids)
        )
        users = {uid: name for uid, name in zip(user_ids, user_names) if name}
        channels = {cid: name for cid, name in zip(channel_ids, channel_names) if name}

        def _user(match: re.Match[str]) -> str:
            name = users.get(match.group(1)) or match.group(2)
            return name if name else match.group(0)

        def _channel(match: re.Match[str]) -> str:
            name = match.group(2) or channels.get(match.group(1))
            return f"#{name}" if name else match.group(0)

        text = USER_RE.sub(_user, text)
        text = CHANNEL_RE.sub(_channel, text)
        text = replace_links(text)
        return html.unescape(text)
