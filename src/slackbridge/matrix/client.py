"""Minimal Matrix client-server calls made as an application service."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from slackbridge.config import Settings, get_settings
from slackbridge.errors import ConfigError, MatrixError
from slackbridge.ids import new_txn_id

logger = logging.getLogger(__name__)

CLIENT_PREFIX = "/_matrix/client/v3"
MEDIA_PREFIX = "/_matrix/media/v3"


def _q(value: str) -> str:
    return quote(value, safe="")


class MatrixClient:
    """Appservice-authenticated homeserver client.

    Every call may masquerade as a bridged ghost through ``user_id``; when
    omitted the bridge bot (the appservice sender) is used.
    """

    def __init__(
        self,
        homeserver_url: str,
        as_token: str,
        bot_user_id: str,
        *,
        timeout_s: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = homeserver_url.rstrip("/")
        self._as_token = as_token
        self.bot_user_id = bot_user_id
        self._timeout_s = timeout_s
        self._transport = transport
        self._registered: set[str] = set()
        self._joined: set[tuple[str, str]] = set()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> MatrixClient:
        settings = settings or get_settings()
        if not settings.homeserver_url.strip():
            raise ConfigError("HOMESERVER_URL is required")
        return cls(
            settings.homeserver_url,
            settings.matrix_as_token,
            settings.bot_user_id,
            timeout_s=float(settings.matrix_http_timeout_seconds),
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        user_id: str | None = None,
        json_body: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        query = dict(params or {})
        if user_id and user_id != self.bot_user_id:
            query["user_id"] = user_id
        request_headers = {"Authorization": f"Bearer {self._as_token}"}
        request_headers.update(headers or {})
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout_s,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(
                    method,
                    path,
                    params=query,
                    json=json_body,
                    content=content,
                    headers=request_headers,
                )
            except httpx.HTTPError as exc:
                raise MatrixError(f"{method} {path} failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.status_code >= 400:
            errcode = payload.get("errcode", "") if isinstance(payload, dict) else ""
            raise MatrixError(
                f"{method} {path} returned {response.status_code} {errcode}".strip(),
                retryable=response.status_code >= 500 or response.status_code == 429,
            )
        return payload if isinstance(payload, dict) else {}

    async def ensure_registered(self, user_id: str) -> None:
        if user_id == self.bot_user_id or user_id in self._registered:
            return
        localpart = user_id[1:].split(":", 1)[0]
        try:
            await self._request(
                "POST",
                f"{CLIENT_PREFIX}/register",
                json_body={"type": "m.login.application_service", "username": localpart},
            )
        except MatrixError as exc:
            if "M_USER_IN_USE" not in str(exc):
                raise
        self._registered.add(user_id)

    async def ensure_joined(self, room_id: str, user_id: str) -> None:
        if (room_id, user_id) in self._joined:
            return
        await self.ensure_registered(user_id)
        await self._request("POST", f"{CLIENT_PREFIX}/rooms/{_q(room_id)}/join", user_id=user_id)
        self._joined.add((room_id, user_id))

    async def send_event(
        self,
        room_id: str,
        event_type: str,
        content: dict[str, Any],
        *,
        user_id: str | None = None,
    ) -> str:
        sender = user_id or self.bot_user_id
        await self.ensure_joined(room_id, sender)
        payload = await self._request(
            "PUT",
            f"{CLIENT_PREFIX}/rooms/{_q(room_id)}/send/{_q(event_type)}/{new_txn_id()}",
            user_id=sender,
            json_body=content,
        )
        return str(payload.get("event_id", ""))

    async def send_message(
        self, room_id: str, content: dict[str, Any], *, user_id: str | None = None
    ) -> str:
        return await self.send_event(room_id, "m.room.message", content, user_id=user_id)

    async def send_reaction(
        self, room_id: str, event_id: str, key: str, *, user_id: str | None = None
    ) -> str:
        content = {"m.relates_to": {"rel_type": "m.annotation", "event_id": event_id, "key": key}}
        return await self.send_event(room_id, "m.reaction", content, user_id=user_id)

    async def send_state(
        self,
        room_id: str,
        event_type: str,
        content: dict[str, Any],
        *,
        state_key: str = "",
        user_id: str | None = None,
    ) -> str:
        sender = user_id or self.bot_user_id
        await self.ensure_joined(room_id, sender)
        payload = await self._request(
            "PUT",
            f"{CLIENT_PREFIX}/rooms/{_q(room_id)}/state/{_q(event_type)}/{_q(state_key)}",
            user_id=sender,
            json_body=content,
        )
        return str(payload.get("event_id", ""))

    async def set_typing(
        self, room_id: str, user_id: str, typing: bool, timeout_ms: int = 5000
    ) -> None:
        await self.ensure_joined(room_id, user_id)
        body: dict[str, Any] = {"typing": typing}
        if typing:
            body["timeout"] = timeout_ms
        await self._request(
            "PUT",
            f"{CLIENT_PREFIX}/rooms/{_q(room_id)}/typing/{_q(user_id)}",
            user_id=user_id,
            json_body=body,
        )

    async def upload(
        self,
        content: bytes,
        content_type: str,
        filename: str,
        *,
        user_id: str | None = None,
    ) -> str:
        payload = await self._request(
            "POST",
            f"{MEDIA_PREFIX}/upload",
            user_id=user_id,
            content=content,
            headers={"Content-Type": content_type or "application/octet-stream"},
            params={"filename": filename} if filename else None,
        )
        uri = str(payload.get("content_uri", ""))
        if not uri:
            raise MatrixError("upload returned no content_uri", retryable=False)
        return uri

    async def redact_event(
        self,
        room_id: str,
        event_id: str,
        *,
        user_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        body: dict[str, Any] = {}
        if reason:
            body["reason"] = reason
        await self._request(
            "PUT",
            f"{CLIENT_PREFIX}/rooms/{_q(room_id)}/redact/{_q(event_id)}/{new_txn_id()}",
            user_id=user_id,
            json_body=body,
        )
        logger.info("Redacted %s in %s", event_id, room_id)
