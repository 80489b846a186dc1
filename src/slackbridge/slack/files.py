"""Slack file access: public-link enablement and content download."""

from __future__ import annotations

import logging
import re

from slackbridge.errors import FileAccessError, SlackApiError
from slackbridge.events.models import SlackFile
from slackbridge.slack.client import SlackWebClient

logger = logging.getLogger(__name__)

_PUB_SECRET_RE = re.compile(r"https?://slack-files\.com/[^-]*-[^-]*-(.*)")


def slack_file_url(file: SlackFile) -> str | None:
    """Direct download URL built from the private URL and the public link's secret."""
    if not file.url_private or not file.permalink_public:
        return None
    match = _PUB_SECRET_RE.match(file.permalink_public)
    if match is None:
        return None
    return f"{file.url_private}?pub_secret={match.group(1)}"


class SlackFileGateway:
    def __init__(self, client: SlackWebClient, max_bytes: int = 20_000_000) -> None:
        self._client = client
        self._max_bytes = max_bytes

    async def make_public(self, file: SlackFile, access_token: str) -> SlackFile:
        if file.public_url_shared and file.permalink_public:
            return file
        try:
            payload = await self._client.files_shared_public_url(access_token, file.id)
        except SlackApiError as exc:
            raise FileAccessError(f"sharedPublicURL failed for {file.id}: {exc}") from exc
        shared = SlackFile.from_payload(payload)
        if not shared.permalink_public:
            logger.warning("No permalink_public for shared file %s", file.id)
            raise FileAccessError(f"file {file.id} has no public permalink")
        return shared

    async def download(self, file: SlackFile) -> bytes:
        url = slack_file_url(file) or file.permalink_public
        if not url:
            raise FileAccessError(f"file {file.id} has no usable URL")
        return await self._client.download(url, self._max_bytes)
