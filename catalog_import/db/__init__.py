"""Catalog database package (SQLite).

    from catalog_import.db import open_catalog
    from catalog_import.db.catalog import find_entry, insert_entry
"""

from catalog_import.db.connection import get_connection, open_catalog
from catalog_import.db.migrations import init_db

__all__ = ["get_connection", "open_catalog", "init_db"]
