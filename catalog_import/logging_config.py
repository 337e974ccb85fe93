"""Logging setup shared by the CLI and both HTTP services."""

from __future__ import annotations

import logging
import os
from typing import Optional

from catalog_import.config import settings

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from ``LOG_LEVEL`` / ``LOG_FORMAT``.

    Safe to call more than once: when handlers already exist (uvicorn, pytest)
    only the level is adjusted.
    """
    level_name = (level or settings.log_level).upper()
    log_format = os.getenv("LOG_FORMAT", DEFAULT_LOG_FORMAT)
    resolved = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    logging.captureWarnings(True)

    if not root_logger.handlers:
        logging.basicConfig(level=resolved, format=log_format)
    else:
        root_logger.setLevel(resolved)
        for handler in root_logger.handlers:
            handler.setLevel(resolved)

    # httpx logs every request at INFO; keep it quiet unless debugging.
    if resolved > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
