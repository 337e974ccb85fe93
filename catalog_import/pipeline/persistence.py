"""Duplicate check and persistence of scraped records.

    find by (title, creator) → fetch image → store blob → insert entry

The existence check and the insert are separate statements; the unique
index on ``(title, creator_handle)`` closes the gap between them.  A
concurrent import that wins the race turns this insert into a ``Skipped``
outcome and the blob stored for it is removed again.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional, Union

import httpx

from catalog_import.config import settings
from catalog_import.db.catalog import find_entry, insert_entry
from catalog_import.errors import PersistenceError
from catalog_import.pipeline.images import ImageSource
from catalog_import.pipeline.models import Skipped, Success
from catalog_import.scraper.models import ScrapedRecord
from catalog_import.storage import LocalBlobStorage

logger = logging.getLogger(__name__)


class CatalogPersister:
    """Write scraped records into the catalog, at most once per title+creator.

    Args:
        conn: Open, initialised catalog connection.
        storage: Blob store with ``store(content, content_type)`` and
            ``delete(key)``.
        images: Source of image bytes (relay service or direct).
        popularity_threshold: Threshold given to every new entry.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        storage: LocalBlobStorage,
        images: ImageSource,
        popularity_threshold: int = 100,
    ) -> None:
        self.conn = conn
        self.storage = storage
        self.images = images
        self.popularity_threshold = popularity_threshold

    @classmethod
    def from_settings(
        cls, conn: sqlite3.Connection, client: Optional[httpx.Client] = None
    ) -> "CatalogPersister":
        return cls(
            conn,
            LocalBlobStorage.from_settings(),
            ImageSource.from_settings(client or httpx.Client()),
            popularity_threshold=settings.popularity_threshold,
        )

    def _exists(self, record: ScrapedRecord) -> bool:
        try:
            return find_entry(self.conn, record.title, record.creator_handle) is not None
        except sqlite3.Error as exc:
            raise PersistenceError(f"Duplicate check failed: {exc}") from exc

    def persist(self, record: ScrapedRecord) -> Union[Success, Skipped]:
        """Store *record* unless an entry with the same title and creator exists.

        Returns:
            ``Success`` carrying the new entry, or ``Skipped`` for a duplicate.

        Raises:
            RelayError: If the image could not be obtained.
            PersistenceError: If the image could not be stored or the row
                could not be inserted.
        """
        if self._exists(record):
            logger.info("Skipped (duplicate): %r by %s", record.title, record.creator_handle)
            return Skipped(url=record.source_url)

        image = self.images.fetch(record.image_url)

        try:
            blob = self.storage.store(image.content, image.content_type)
        except OSError as exc:
            raise PersistenceError(f"Image upload failed: {exc}") from exc

        try:
            entry = insert_entry(
                self.conn,
                title=record.title,
                creator_handle=record.creator_handle,
                image_url=blob.public_url,
                popularity_threshold=self.popularity_threshold,
                source_url=record.source_url,
                external_id=record.canonical_id,
                price=record.price,
                description=record.description,
                category=record.category,
            )
        except sqlite3.IntegrityError as exc:
            self.storage.delete(blob.key)
            if self._exists(record):
                logger.info("Skipped (inserted concurrently): %r", record.title)
                return Skipped(url=record.source_url)
            raise PersistenceError(f"Database insert error: {exc}") from exc
        except sqlite3.Error as exc:
            self.storage.delete(blob.key)
            raise PersistenceError(f"Database insert error: {exc}") from exc

        logger.info("Inserted %r by %s as %s", entry.title, entry.creator_handle, entry.id)
        return Success(url=record.source_url, entry=entry)
