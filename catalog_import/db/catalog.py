"""Read/write operations for the ``catalog_entries`` table."""

from __future__ import annotations

import sqlite3
import uuid
from time import time
from typing import Optional

from catalog_import.db.models import STATUS_ACTIVE, STATUSES, CatalogEntry


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_entry(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(
        id=row["id"],
        title=row["title"],
        creator_handle=row["creator_handle"],
        image_url=row["image_url"],
        popularity_threshold=row["popularity_threshold"],
        current_count=row["current_count"],
        like_count=row["like_count"],
        status=row["status"],
        source_url=row["source_url"],
        external_id=row["external_id"],
        price=row["price"],
        description=row["description"],
        category=row["category"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def find_entry(
    conn: sqlite3.Connection, title: str, creator_handle: str
) -> Optional[CatalogEntry]:
    """Return the entry with exactly this title and creator, or ``None``."""
    row = conn.execute(
        "SELECT * FROM catalog_entries WHERE title = ? AND creator_handle = ? LIMIT 1",
        (title, creator_handle),
    ).fetchone()
    return _row_to_entry(row) if row else None


def insert_entry(
    conn: sqlite3.Connection,
    title: str,
    creator_handle: str,
    image_url: str,
    popularity_threshold: int,
    source_url: Optional[str] = None,
    external_id: Optional[str] = None,
    price: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
    entry_id: Optional[str] = None,
) -> CatalogEntry:
    """Insert a new ``active`` entry with zero counts and return it.

    Raises:
        sqlite3.IntegrityError: If an entry with the same title and creator
            already exists (unique index), or a CHECK constraint fails.
    """
    eid = entry_id or str(uuid.uuid4())
    now = int(time())

    with conn:
        conn.execute(
            """
            INSERT INTO catalog_entries (
                id, title, creator_handle, image_url, popularity_threshold,
                current_count, like_count, status, source_url, external_id,
                price, description, category, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, 0, 0, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                eid, title, creator_handle, image_url, popularity_threshold,
                STATUS_ACTIVE, source_url, external_id,
                price, description, category, now, now,
            ),
        )

    return get_entry(conn, eid)  # type: ignore[return-value]


def get_entry(conn: sqlite3.Connection, entry_id: str) -> Optional[CatalogEntry]:
    """Fetch a single entry by id.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT * FROM catalog_entries WHERE id = ?", (entry_id,)
    ).fetchone()
    return _row_to_entry(row) if row else None


def list_entries(
    conn: sqlite3.Connection,
    status: Optional[str] = None,
) -> list[CatalogEntry]:
    """Return all entries, newest first, optionally filtered by ``status``.

    Raises:
        ValueError: If *status* is not a known catalog status.
    """
    if status:
        if status not in STATUSES:
            raise ValueError(f"Unknown status {status!r}")
        rows = conn.execute(
            "SELECT * FROM catalog_entries WHERE status = ? ORDER BY created_at DESC, rowid DESC",
            (status,),
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM catalog_entries ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
    return [_row_to_entry(r) for r in rows]


def count_entries(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT COUNT(*) FROM catalog_entries").fetchone()
    return row[0]
