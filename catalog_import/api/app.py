"""FastAPI application factory for the admin import API.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``) and initialises the schema.  On
shutdown it closes the connection cleanly.

Routers
-------
    /imports   — run the import pipeline (SSE streaming)
    /catalog   — read-only view of catalog entries
    /images    — locally stored product images (static files)

The image relay is a separate service; see :mod:`catalog_import.relay.app`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from catalog_import.config import settings
from catalog_import.db import get_connection, init_db
from catalog_import.logging_config import configure_logging

from catalog_import.api.routers import catalog as catalog_router
from catalog_import.api.routers import imports as imports_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the workspace, open the DB on startup and close it on shutdown."""
    configure_logging()
    settings.ensure_workspace()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Catalog Import API",
        description=(
            "Admin interface for importing marketplace product pages into the "
            "bidding catalog. Streams import progress as Server-Sent Events and "
            "serves the locally stored product images."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(imports_router.router, prefix="/imports", tags=["imports"])
    app.include_router(catalog_router.router, prefix="/catalog", tags=["catalog"])
    app.mount(
        "/images",
        StaticFiles(directory=settings.images_dir, check_dir=False),
        name="images",
    )

    return app


# Module-level instance used by uvicorn:
#   uvicorn catalog_import.api.app:app --reload
app = create_app()
