"""Simple SQL migration runner."""

from pathlib import Path

from slackbridge.db.connection import get_conn

MIGRATIONS_DIR = Path(__file__).resolve().parent


def run_migrations(path: str | None = None) -> list[str]:
    """Apply pending ``*.sql`` files in name order; returns the names applied."""
    newly_applied: list[str] = []
    with get_conn(path) as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS schema_migrations("
                "name TEXT PRIMARY KEY, "
                "applied_at TEXT NOT NULL)"
            )
            applied = {
                row[0] for row in conn.execute("SELECT name FROM schema_migrations").fetchall()
            }
            for file in sorted(MIGRATIONS_DIR.glob("*.sql")):
                if file.name in applied:
                    continue
                # executescript would commit the open transaction; run statements one by one.
                for statement in file.read_text().split(";"):
                    if statement.strip():
                        conn.execute(statement)
                conn.execute(
                    "INSERT INTO schema_migrations(name, applied_at) VALUES(?, datetime('now'))",
                    (file.name,),
                )
                newly_applied.append(file.name)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
    return newly_applied


if __name__ == "__main__":
    run_migrations()
