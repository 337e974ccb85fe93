"""Data models for the scraper stage of the import pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass
class RawPage:
    """The raw markup returned by the unblocking relay for one address."""

    url: str
    html: str
    status_code: int


@dataclass
class ScrapedRecord:
    """Product data extracted from a single product page.

    ``title``, ``creator_handle`` and ``image_url`` are always non-empty; the
    parser returns ``None`` instead of building a record without them.
    """

    title: str
    creator_handle: str
    image_url: str
    canonical_id: str
    source_url: str
    price: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
