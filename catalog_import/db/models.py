"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

STATUS_ACTIVE = "active"
STATUS_WON = "won"
STATUS_INACTIVE = "inactive"
STATUSES = (STATUS_ACTIVE, STATUS_WON, STATUS_INACTIVE)


@dataclass
class CatalogEntry:
    id: str
    title: str
    creator_handle: str
    image_url: str
    popularity_threshold: int
    current_count: int
    like_count: int
    status: str
    source_url: Optional[str]
    external_id: Optional[str]
    price: Optional[str]
    description: Optional[str]
    category: Optional[str]
    created_at: int
    updated_at: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
