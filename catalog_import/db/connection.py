"""SQLite connection handling for the catalog database.

Usage::

    from catalog_import.db.connection import open_catalog

    with open_catalog() as conn:
        entries = list_entries(conn)

``open_catalog`` is what the CLI commands and each import worker use; the
admin API keeps one long-lived connection from :func:`get_connection` on
``app.state.db`` for its read endpoints.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from catalog_import.config import settings
from catalog_import.db.migrations import init_db

# Seconds a statement waits on a lock held by another connection.
_BUSY_TIMEOUT = 5.0


def get_connection(db_path: Optional[Union[Path, str]] = None) -> sqlite3.Connection:
    """Open a SQLite connection to the catalog.

    The connection has ``row_factory`` set to :class:`sqlite3.Row`, foreign
    keys enabled and the WAL journal, so the API's read connection and an
    import worker's write connection do not block each other.  It may be used
    from a thread other than the one that opened it (one thread at a time).

    Args:
        db_path: Override the DB path (``":memory:"`` in tests).  Defaults to
            ``settings.db_path``; the parent directory is created on demand.
    """
    path = db_path or settings.db_path
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path), timeout=_BUSY_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


@contextmanager
def open_catalog(db_path: Optional[Union[Path, str]] = None) -> Iterator[sqlite3.Connection]:
    """Open the catalog with its schema up to date; close it on exit."""
    conn = get_connection(db_path)
    try:
        init_db(conn)
        yield conn
    finally:
        conn.close()
