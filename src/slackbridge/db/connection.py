"""SQLite connection management."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from slackbridge.config import get_settings


def connect(path: str | None = None) -> sqlite3.Connection:
    db_path = path or get_settings().app_db
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    # Autocommit mode keeps write locks short between the API and CLI processes.
    conn = sqlite3.connect(db_path, timeout=30.0, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA busy_timeout = 30000")
    return conn


@contextmanager
def get_conn(path: str | None = None) -> Iterator[sqlite3.Connection]:
    conn = connect(path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
