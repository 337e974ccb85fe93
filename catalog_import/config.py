"""Centralised settings for the catalog import backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _ignore_tls_hostname_default() -> bool:
    """Resolve ``IGNORE_SSL_ERRORS``.

    Unset means "tolerate hostname mismatches" everywhere except production.
    Any explicit value other than ``false`` keeps the tolerance on.
    """
    raw = os.environ.get("IGNORE_SSL_ERRORS")
    if raw is None:
        return os.environ.get("ENVIRONMENT", "development").lower() != "production"
    return raw.strip().lower() != "false"


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("CATALOG_WORKSPACE", Path.home() / ".catalog_import")
        ).expanduser()
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite catalog database."""
        return self.workspace_dir / "catalog.db"

    @property
    def images_dir(self) -> Path:
        """Directory holding locally stored product images."""
        return self.workspace_dir / "images"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    environment: str = field(
        default_factory=lambda: os.environ.get("ENVIRONMENT", "development")
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    # ------------------------------------------------------------------
    # Source marketplace
    # ------------------------------------------------------------------
    source_host: str = field(
        default_factory=lambda: os.environ.get("SOURCE_HOST", "www.threadless.com")
    )
    source_path_segment: str = field(
        default_factory=lambda: os.environ.get("SOURCE_PATH_SEGMENT", "/shop/")
    )
    source_referer: str = field(
        default_factory=lambda: os.environ.get(
            "SOURCE_REFERER", "https://www.threadless.com/"
        )
    )

    # ------------------------------------------------------------------
    # Page fetcher (unblocking relay)
    # ------------------------------------------------------------------
    unlocker_api_url: str = field(
        default_factory=lambda: os.environ.get(
            "BRIGHT_DATA_API_URL", "https://api.brightdata.com/request"
        )
    )
    unlocker_api_key: str = field(
        default_factory=lambda: os.environ.get("BRIGHT_DATA_API_KEY", "")
    )
    unlocker_zone: str = field(
        default_factory=lambda: os.environ.get("BRIGHT_DATA_ZONE", "residential_proxy1")
    )
    fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_TIMEOUT", "60.0"))
    )

    # ------------------------------------------------------------------
    # Image relay
    # ------------------------------------------------------------------
    relay_url: str = field(
        default_factory=lambda: os.environ.get("IMAGE_PROXY_URL", "http://localhost:3100")
    )
    relay_port: int = field(
        default_factory=lambda: int(os.environ.get("IMAGE_PROXY_PORT", "3100"))
    )
    relay_timeout: float = field(
        default_factory=lambda: float(os.environ.get("RELAY_TIMEOUT", "30.0"))
    )
    ignore_tls_hostname: bool = field(default_factory=_ignore_tls_hostname_default)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    request_delay: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_DELAY", "2.0"))
    )
    popularity_threshold: int = field(
        default_factory=lambda: int(os.environ.get("POPULARITY_THRESHOLD", "100"))
    )
    public_image_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "PUBLIC_IMAGE_BASE_URL", "http://localhost:8000/images"
        )
    )

    def ensure_workspace(self) -> None:
        """Create the workspace and image directories if they do not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)
        self.images_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from catalog_import.config import settings
settings = Settings()
