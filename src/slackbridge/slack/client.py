"""Slack Web API calls used while normalizing inbound events."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from slackbridge.config import Settings, get_settings
from slackbridge.errors import FileAccessError, SlackApiError

logger = logging.getLogger(__name__)


class SlackWebClient:
    """Thin async Web API client; the token is supplied per call since each
    bridged room may carry its own."""

    def __init__(
        self,
        base_url: str = "https://slack.com/api",
        *,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> SlackWebClient:
        settings = settings or get_settings()
        return cls(
            settings.slack_api_base_url,
            timeout_s=float(settings.slack_http_timeout_seconds),
        )

    async def call(self, method: str, token: str, params: dict[str, str]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self._base_url}/{method}",
                    data=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                raise SlackApiError(
                    f"{method} returned HTTP {status}",
                    retryable=status == 429 or status >= 500,
                ) from exc
            except httpx.HTTPError as exc:
                raise SlackApiError(f"{method} failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise SlackApiError(f"{method}: invalid JSON response") from exc
        if not isinstance(payload, dict) or not payload.get("ok"):
            error = payload.get("error", "unknown_error") if isinstance(payload, dict) else ""
            logger.debug("Slack API %s returned error %s", method, error)
            raise SlackApiError(f"{method}: {error}", retryable=False)
        return payload

    async def users_info(self, token: str, user_id: str) -> dict[str, Any]:
        payload = await self.call("users.info", token, {"user": user_id})
        user = payload.get("user")
        return user if isinstance(user, dict) else {}

    async def conversations_info(self, token: str, channel_id: str) -> dict[str, Any]:
        payload = await self.call("conversations.info", token, {"channel": channel_id})
        channel = payload.get("channel")
        return channel if isinstance(channel, dict) else {}

    async def files_shared_public_url(self, token: str, file_id: str) -> dict[str, Any]:
        payload = await self.call("files.sharedPublicURL", token, {"file": file_id})
        file = payload.get("file")
        return file if isinstance(file, dict) else {}

    async def download(self, url: str, max_bytes: int) -> bytes:
        chunks: list[bytes] = []
        total = 0
        async with httpx.AsyncClient(
            timeout=self._timeout_s,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            try:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes():
                        total += len(chunk)
                        if total > max_bytes:
                            raise FileAccessError(f"file exceeds {max_bytes} bytes")
                        chunks.append(chunk)
            except httpx.HTTPError as exc:
                raise FileAccessError(f"download failed: {exc}") from exc
        return b"".join(chunks)
