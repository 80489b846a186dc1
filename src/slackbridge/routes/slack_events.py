"""Slack Events API webhook endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from slackbridge.bridge.handler import SlackEventHandler
from slackbridge.logging import bind_context, clear_context
from slackbridge.tasks import get_task_runner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])


class AckCollector:
    """Captures the first response the handler sends back."""

    def __init__(self) -> None:
        self.status_code = status.HTTP_200_OK
        self.body: str | None = None
        self.headers: dict[str, str] | None = None
        self.sent = asyncio.Event()

    def __call__(self, status_code: int, body: str | None, headers: dict[str, str] | None) -> None:
        if self.sent.is_set():
            return
        self.status_code = status_code
        self.body = body
        self.headers = headers
        self.sent.set()

    def to_response(self) -> Response:
        headers = dict(self.headers or {})
        media_type = headers.pop("Content-Type", "text/plain")
        return Response(
            content=self.body or "",
            status_code=self.status_code,
            headers=headers,
            media_type=media_type,
        )


def _get_handler(request: Request) -> SlackEventHandler:
    handler = getattr(request.app.state, "event_handler", None)
    if handler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="bridge_not_ready",
        )
    return handler


@router.post("/events")
async def slack_events(request: Request) -> Response:
    """Handle Slack Events API deliveries."""
    try:
        payload: Any = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_json") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_json")

    handler = _get_handler(request)
    ack = AckCollector()
    envelope_type = payload.get("type")

    if envelope_type == "url_verification":
        handler.on_verify_url(str(payload.get("challenge") or ""), ack)
        return ack.to_response()

    if envelope_type != "event_callback":
        logger.info("Ignoring slack envelope type %r", envelope_type)
        return JSONResponse(status_code=status.HTTP_200_OK, content={"ignored": True})

    event = payload.get("event")
    if not isinstance(event, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing_event")
    team_id = str(payload.get("team_id") or "")

    # The spawned task copies this context, so its log lines carry the delivery id.
    clear_context()
    bind_context(slack_event_id=str(payload.get("event_id") or ""))

    task = get_task_runner().spawn(
        handler.handle(event, team_id, ack),
        name=f"slack_event:{event.get('type')}",
    )
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="shutting_down",
        )
    ack_wait = asyncio.ensure_future(ack.sent.wait())
    await asyncio.wait({ack_wait, task}, return_when=asyncio.FIRST_COMPLETED)
    if not ack.sent.is_set():
        ack_wait.cancel()
        logger.error("Slack event task finished without acknowledging")
        return JSONResponse(status_code=status.HTTP_200_OK, content={"accepted": False})
    return ack.to_response()
