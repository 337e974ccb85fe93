"""Read-only endpoints for catalog entries.

Routes
------
GET /catalog              List entries (optional ?status= filter)
GET /catalog/{entry_id}   Fetch a single entry
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from catalog_import.db.catalog import get_entry, list_entries

router = APIRouter()


class CatalogEntryResponse(BaseModel):
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


@router.get("", response_model=list[CatalogEntryResponse])
def list_catalog(request: Request, status: Optional[str] = None) -> list[dict[str, Any]]:
    """List catalog entries, newest first."""
    conn = request.app.state.db
    try:
        entries = list_entries(conn, status=status)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return [e.to_dict() for e in entries]


@router.get("/{entry_id}", response_model=CatalogEntryResponse)
def get_catalog_entry(entry_id: str, request: Request) -> dict[str, Any]:
    """Fetch one catalog entry by id."""
    entry = get_entry(request.app.state.db, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Catalog entry not found: {entry_id}")
    return entry.to_dict()
