"""Async datastore facade over the SQLite query helpers."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Callable
from typing import Any, TypeVar

from slackbridge.bridge.ports import BridgedEvent, ConversationUnit
from slackbridge.db import queries
from slackbridge.db.connection import get_conn
from slackbridge.errors import DatastoreError

T = TypeVar("T")


class SqliteDatastore:
    """Runs each query on a worker thread so the event loop never blocks on SQLite."""

    def __init__(self, path: str | None = None) -> None:
        self._path = path

    def _run_sync(self, func: Callable[[sqlite3.Connection], T]) -> T:
        try:
            with get_conn(self._path) as conn:
                return func(conn)
        except sqlite3.Error as exc:
            raise DatastoreError(str(exc)) from exc

    async def _run(self, func: Callable[[sqlite3.Connection], T]) -> T:
        return await asyncio.to_thread(self._run_sync, func)

    async def get_event_by_slack_id(self, channel_id: str, slack_ts: str) -> BridgedEvent | None:
        row = await self._run(lambda conn: queries.get_event_by_slack_id(conn, channel_id, slack_ts))
        if row is None:
            return None
        return BridgedEvent(
            matrix_room_id=str(row["matrix_room_id"]),
            matrix_event_id=str(row["matrix_event_id"]),
            slack_channel_id=str(row["slack_channel_id"]),
            slack_ts=str(row["slack_ts"]),
        )

    async def insert_event(
        self,
        matrix_room_id: str,
        matrix_event_id: str,
        slack_channel_id: str,
        slack_ts: str,
    ) -> bool:
        return await self._run(
            lambda conn: queries.insert_event(
                conn, matrix_room_id, matrix_event_id, slack_channel_id, slack_ts
            )
        )

    async def upsert_room(self, room: ConversationUnit) -> None:
        entry = room.to_entry()
        await self._run(lambda conn: queries.upsert_room(conn, entry))
        room.mark_clean()

    def get_room(self, slack_channel_id: str) -> dict[str, Any] | None:
        return self._run_sync(lambda conn: queries.get_room_by_channel(conn, slack_channel_id))

    def list_rooms(self) -> list[dict[str, Any]]:
        """Synchronous on purpose: used at startup and by the CLI."""
        return self._run_sync(queries.list_rooms)

    def upsert_room_entry(self, entry: dict[str, Any]) -> None:
        self._run_sync(lambda conn: queries.upsert_room(conn, entry))

    def delete_room(self, slack_channel_id: str) -> bool:
        return self._run_sync(lambda conn: queries.delete_room(conn, slack_channel_id))
