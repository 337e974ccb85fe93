"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from catalog_import.api import app

    uvicorn catalog_import.api:app --reload
"""

from catalog_import.api.app import app

__all__ = ["app"]
