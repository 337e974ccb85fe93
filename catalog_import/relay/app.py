"""Standalone image relay service.

Routes
------
GET /health                          Liveness probe.
GET /api/proxy-image?url=<encoded>   Download and return a remote image.

Run it on its own port, separate from the admin API::

    uvicorn catalog_import.relay.app:app --port 3100

Whether TLS hostname mismatches are tolerated is decided once at startup
from ``IGNORE_SSL_ERRORS`` (see :class:`~catalog_import.config.Settings`).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog_import.config import settings
from catalog_import.errors import RelayError, RelayErrorKind
from catalog_import.logging_config import configure_logging
from catalog_import.relay.proxy import build_relay_client, relay_image

logger = logging.getLogger(__name__)

USAGE = "/api/proxy-image?url=<encoded_image_url>"
AVAILABLE_ENDPOINTS = [
    "GET /health",
    f"GET {USAGE}",
]

_ERROR_TYPES = {
    RelayErrorKind.TIMEOUT: "Timeout",
    RelayErrorKind.NETWORK_OR_TLS_FAILURE: "Network/Fetch Error",
    RelayErrorKind.HTTP_STATUS: "Upstream HTTP Error",
}


def _is_absolute_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the shared outbound client on startup and close it on shutdown."""
    configure_logging()
    logger.info("Image relay starting (environment: %s)", settings.environment)
    tolerate = settings.ignore_tls_hostname
    if tolerate:
        logger.warning(
            "TLS hostname validation is DISABLED. Set IGNORE_SSL_ERRORS=false for production."
        )
    else:
        logger.info("TLS hostname validation is ENABLED.")

    client = build_relay_client(tolerate_hostname_mismatch=tolerate)
    app.state.relay_client = client
    try:
        yield
    finally:
        client.close()


def create_relay_app() -> FastAPI:
    """Return a fully-configured image relay application."""
    app = FastAPI(
        title="Image Relay",
        description=(
            "Downloads remote product images server-side so browser clients "
            "are not subject to cross-origin restrictions."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Wrong method on a known path is reported like an unknown path.
        if exc.status_code in (404, 405):
            return JSONResponse(
                status_code=404,
                content={"error": "Not found", "availableEndpoints": AVAILABLE_ENDPOINTS},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "service": "image-proxy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/proxy-image")
    def proxy_image(request: Request, url: Optional[str] = None) -> Response:
        """Fetch *url* and stream the image bytes back with a 24h cache header."""
        if not url:
            return JSONResponse(
                status_code=400,
                content={"error": "Missing url parameter", "usage": USAGE},
            )
        if not _is_absolute_http_url(url):
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid URL format", "provided": url},
            )

        client = getattr(request.app.state, "relay_client", None)
        try:
            image = relay_image(url, client)
        except RelayError as exc:
            if exc.relay_kind is RelayErrorKind.NOT_AN_IMAGE:
                return JSONResponse(
                    status_code=400,
                    content={
                        "error": "URL does not point to an image",
                        "contentType": exc.content_type,
                        "url": url,
                    },
                )
            logger.error("Relay failed for %s: %s", url, exc)
            body: dict[str, Any] = {
                "error": str(exc),
                "type": _ERROR_TYPES.get(exc.relay_kind, "Server Error"),
                "url": url,
            }
            if exc.status_code is not None:
                body["details"] = f"upstream status {exc.status_code}"
            return JSONResponse(status_code=500, content=body)

        return Response(
            content=image.content,
            media_type=image.content_type,
            headers={
                "Cache-Control": "public, max-age=86400",
                "Access-Control-Allow-Origin": "*",
            },
        )

    return app


# Module-level instance used by uvicorn:
#   uvicorn catalog_import.relay.app:app --port 3100
app = create_relay_app()
