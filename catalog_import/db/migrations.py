"""Schema setup for the catalog database.

``schema.sql`` holds the base tables; anything added later goes into
``MIGRATIONS`` and is recorded in ``schema_version`` once applied.
"""

from __future__ import annotations

import sqlite3

from catalog_import.config import settings

# (version, statement), applied in ascending order after schema.sql.
MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        "CREATE INDEX IF NOT EXISTS idx_catalog_external_id "
        "ON catalog_entries(external_id)",
    ),
]


def init_db(conn: sqlite3.Connection) -> None:
    """Bring *conn* up to the latest schema; a no-op on a current catalog."""
    conn.executescript(settings.schema_path.read_text(encoding="utf-8"))
    with conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version ("
            " version INTEGER PRIMARY KEY,"
            " applied_at INTEGER DEFAULT (strftime('%s', 'now')))"
        )
    migrate(conn)


def current_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def migrate(conn: sqlite3.Connection) -> None:
    """Apply each pending entry of ``MIGRATIONS`` in its own transaction."""
    pending = [(v, sql) for v, sql in MIGRATIONS if v > current_version(conn)]
    for version, sql in pending:
        with conn:
            conn.execute(sql)
            conn.execute("INSERT INTO schema_version(version) VALUES (?)", (version,))
