"""Query helpers for bridged rooms and bridged events."""

import sqlite3
from datetime import UTC, datetime
from typing import Any


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def upsert_room(conn: sqlite3.Connection, entry: dict[str, Any]) -> None:
    now = now_iso()
    conn.execute(
        """
        INSERT INTO rooms(
          matrix_room_id, slack_channel_id, slack_team_id, slack_team_domain,
          slack_channel_name, slack_bot_id, slack_access_token, created_at, updated_at
        )
        VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(matrix_room_id) DO UPDATE SET
          slack_channel_id=excluded.slack_channel_id,
          slack_team_id=excluded.slack_team_id,
          slack_team_domain=excluded.slack_team_domain,
          slack_channel_name=excluded.slack_channel_name,
          slack_bot_id=excluded.slack_bot_id,
          slack_access_token=excluded.slack_access_token,
          updated_at=excluded.updated_at
        """,
        (
            entry["matrix_room_id"],
            entry["slack_channel_id"],
            entry.get("slack_team_id"),
            entry.get("slack_team_domain"),
            entry.get("slack_channel_name"),
            entry.get("slack_bot_id"),
            entry.get("slack_access_token"),
            now,
            now,
        ),
    )


def list_rooms(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT matrix_room_id, slack_channel_id, slack_team_id, slack_team_domain, "
        "slack_channel_name, slack_bot_id, slack_access_token "
        "FROM rooms ORDER BY slack_team_domain, slack_channel_name"
    ).fetchall()
    return [dict(row) for row in rows]


def get_room_by_channel(conn: sqlite3.Connection, slack_channel_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT matrix_room_id, slack_channel_id, slack_team_id, slack_team_domain, "
        "slack_channel_name, slack_bot_id, slack_access_token "
        "FROM rooms WHERE slack_channel_id=? LIMIT 1",
        (slack_channel_id,),
    ).fetchone()
    return dict(row) if row is not None else None


def delete_room(conn: sqlite3.Connection, slack_channel_id: str) -> bool:
    cur = conn.execute("DELETE FROM rooms WHERE slack_channel_id=?", (slack_channel_id,))
    return cur.rowcount > 0


def insert_event(
    conn: sqlite3.Connection,
    matrix_room_id: str,
    matrix_event_id: str,
    slack_channel_id: str,
    slack_ts: str,
) -> bool:
    """Record a bridged message; returns False when the Slack ts was already stored."""
    cur = conn.execute(
        "INSERT OR IGNORE INTO events("
        "matrix_room_id, matrix_event_id, slack_channel_id, slack_ts, created_at"
        ") VALUES(?, ?, ?, ?, ?)",
        (matrix_room_id, matrix_event_id, slack_channel_id, slack_ts, now_iso()),
    )
    return cur.rowcount > 0


def get_event_by_slack_id(
    conn: sqlite3.Connection, slack_channel_id: str, slack_ts: str
) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT matrix_room_id, matrix_event_id, slack_channel_id, slack_ts "
        "FROM events WHERE slack_channel_id=? AND slack_ts=? LIMIT 1",
        (slack_channel_id, slack_ts),
    ).fetchone()
    return dict(row) if row is not None else None
