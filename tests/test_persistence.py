"""Tests for blob storage, the image source and the catalog persister.

The persister runs against an in-memory catalog and a temp-dir blob store;
image bytes come from ``FakeImages`` (see ``conftest.py``).  ``ImageSource``
tests use ``respx`` for both the relay service and the direct download.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest
import respx

from catalog_import.db.catalog import count_entries, find_entry, insert_entry
from catalog_import.errors import PersistenceError, RelayError, RelayErrorKind
from catalog_import.pipeline.images import ImageSource
from catalog_import.pipeline.models import Skipped, Success
from catalog_import.pipeline.persistence import CatalogPersister
from catalog_import.scraper.models import ScrapedRecord
from catalog_import.storage import LocalBlobStorage, extension_for, generate_key


_RELAY = "http://relay.test:3100"
_IMAGE_URL = "https://cdn.example/products/1/shirt.png"
_PNG = b"\x89PNG\r\n\x1a\nfake"


def _record(title: str = "Cool Tee", creator: str = "artist1") -> ScrapedRecord:
    return ScrapedRecord(
        title=title,
        creator_handle=creator,
        image_url=_IMAGE_URL,
        canonical_id="1",
        source_url=f"https://www.threadless.com/shop/@{creator}/design/cool-tee",
        price="14.00",
        fetched_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def _stored_files(storage: LocalBlobStorage) -> list:
    if not storage.root.exists():
        return []
    return list(storage.root.iterdir())


# ---------------------------------------------------------------------------
# Blob storage
# ---------------------------------------------------------------------------

class TestLocalBlobStorage:
    @pytest.mark.parametrize(
        ("content_type", "ext"),
        [
            ("image/png", "png"),
            ("image/webp", "webp"),
            ("image/jpeg", "jpg"),
            ("image/gif", "gif"),
            ("application/octet-stream", "jpg"),
        ],
    )
    def test_extension_for(self, content_type: str, ext: str) -> None:
        assert extension_for(content_type) == ext

    def test_generate_key_shape(self) -> None:
        key = generate_key("image/png")
        assert key.startswith("scraped-")
        assert key.endswith(".png")
        assert generate_key("image/png") != key

    def test_store_writes_file(self, storage: LocalBlobStorage) -> None:
        blob = storage.store(_PNG, "image/png")
        assert (storage.root / blob.key).read_bytes() == _PNG
        assert blob.public_url == f"http://cdn.test/images/{blob.key}"

    def test_store_never_overwrites(self, storage: LocalBlobStorage) -> None:
        storage.store(_PNG, "image/png", key="fixed.png")
        with pytest.raises(FileExistsError):
            storage.store(b"other", "image/png", key="fixed.png")

    def test_delete(self, storage: LocalBlobStorage) -> None:
        blob = storage.store(_PNG, "image/png")
        storage.delete(blob.key)
        assert _stored_files(storage) == []
        storage.delete(blob.key)  # no-op


# ---------------------------------------------------------------------------
# ImageSource
# ---------------------------------------------------------------------------

class TestImageSource:
    @pytest.fixture()
    def source(self):
        with httpx.Client() as client, httpx.Client() as direct:
            yield ImageSource(client, relay_url=_RELAY + "/", direct_client=direct)

    @respx.mock
    def test_uses_relay_service(self, source: ImageSource) -> None:
        route = respx.get(f"{_RELAY}/api/proxy-image", params={"url": _IMAGE_URL}).mock(
            return_value=httpx.Response(200, content=_PNG, headers={"content-type": "image/png"})
        )
        image = source.fetch(_IMAGE_URL)
        assert route.called
        assert image.content == _PNG
        assert image.content_type == "image/png"

    @respx.mock
    def test_falls_back_when_relay_unreachable(self, source: ImageSource) -> None:
        respx.get(f"{_RELAY}/api/proxy-image", params={"url": _IMAGE_URL}).mock(
            side_effect=httpx.ConnectError("refused")
        )
        direct = respx.get(_IMAGE_URL).mock(
            return_value=httpx.Response(200, content=_PNG, headers={"content-type": "image/png"})
        )
        image = source.fetch(_IMAGE_URL)
        assert direct.called
        assert image.content == _PNG

    @respx.mock
    def test_falls_back_on_relay_server_error(self, source: ImageSource) -> None:
        respx.get(f"{_RELAY}/api/proxy-image", params={"url": _IMAGE_URL}).mock(
            return_value=httpx.Response(500, json={"error": "boom", "type": "Timeout"})
        )
        direct = respx.get(_IMAGE_URL).mock(
            return_value=httpx.Response(200, content=_PNG, headers={"content-type": "image/gif"})
        )
        assert source.fetch(_IMAGE_URL).content_type == "image/gif"
        assert direct.called

    @respx.mock
    def test_relay_answer_must_be_an_image(self, source: ImageSource) -> None:
        respx.get(f"{_RELAY}/api/proxy-image", params={"url": _IMAGE_URL}).mock(
            return_value=httpx.Response(
                200, text="<html>login</html>", headers={"content-type": "text/html"}
            )
        )
        with pytest.raises(RelayError) as exc_info:
            source.fetch(_IMAGE_URL)
        assert exc_info.value.relay_kind is RelayErrorKind.NOT_AN_IMAGE
        assert exc_info.value.content_type == "text/html"

    def test_not_an_image_does_not_fall_back(self, source: ImageSource) -> None:
        with respx.mock(assert_all_called=False) as router:
            router.get(f"{_RELAY}/api/proxy-image", params={"url": _IMAGE_URL}).mock(
                return_value=httpx.Response(
                    400,
                    json={
                        "error": "URL does not point to an image",
                        "contentType": "text/html",
                        "url": _IMAGE_URL,
                    },
                )
            )
            direct = router.get(_IMAGE_URL).mock(return_value=httpx.Response(200, content=_PNG))
            with pytest.raises(RelayError) as exc_info:
                source.fetch(_IMAGE_URL)
        assert exc_info.value.relay_kind is RelayErrorKind.NOT_AN_IMAGE
        assert exc_info.value.content_type == "text/html"
        assert not direct.called

    @respx.mock
    def test_direct_only_without_relay_url(self) -> None:
        direct = respx.get(_IMAGE_URL).mock(
            return_value=httpx.Response(200, content=_PNG, headers={"content-type": "image/png"})
        )
        with httpx.Client() as client, httpx.Client() as direct_client:
            source = ImageSource(client, relay_url="", direct_client=direct_client)
            source.fetch(_IMAGE_URL)
        assert direct.called

    @respx.mock
    def test_direct_failure_raises(self, source: ImageSource) -> None:
        respx.get(f"{_RELAY}/api/proxy-image", params={"url": _IMAGE_URL}).mock(
            side_effect=httpx.ConnectError("refused")
        )
        respx.get(_IMAGE_URL).mock(return_value=httpx.Response(404))
        with pytest.raises(RelayError) as exc_info:
            source.fetch(_IMAGE_URL)
        assert exc_info.value.relay_kind is RelayErrorKind.HTTP_STATUS


# ---------------------------------------------------------------------------
# CatalogPersister
# ---------------------------------------------------------------------------

class TestCatalogPersister:
    def test_new_record_is_stored(
        self, persister: CatalogPersister, conn: sqlite3.Connection, storage, images
    ) -> None:
        outcome = persister.persist(_record())

        assert isinstance(outcome, Success)
        entry = outcome.entry
        assert entry.title == "Cool Tee"
        assert entry.creator_handle == "artist1"
        assert entry.status == "active"
        assert entry.current_count == 0
        assert entry.like_count == 0
        assert entry.popularity_threshold == 100
        assert entry.external_id == "1"
        assert entry.image_url.startswith("http://cdn.test/images/scraped-")
        assert entry.image_url.endswith(".png")
        assert images.calls == [_IMAGE_URL]
        assert len(_stored_files(storage)) == 1

    def test_duplicate_is_skipped_without_transfer(
        self, persister: CatalogPersister, conn: sqlite3.Connection, storage, images
    ) -> None:
        persister.persist(_record())
        outcome = persister.persist(_record())

        assert isinstance(outcome, Skipped)
        assert outcome.reason == "duplicate"
        assert count_entries(conn) == 1
        assert images.calls == [_IMAGE_URL]
        assert len(_stored_files(storage)) == 1

    def test_same_title_other_creator_is_new(
        self, persister: CatalogPersister, conn: sqlite3.Connection
    ) -> None:
        persister.persist(_record(creator="artist1"))
        outcome = persister.persist(_record(creator="artist2"))
        assert isinstance(outcome, Success)
        assert count_entries(conn) == 2

    def test_concurrent_insert_becomes_skipped(
        self, persister: CatalogPersister, conn: sqlite3.Connection, storage
    ) -> None:
        existing = insert_entry(
            conn,
            title="Cool Tee",
            creator_handle="artist1",
            image_url="http://cdn.test/images/other.png",
            popularity_threshold=100,
        )
        # First lookup misses (the other import has not committed yet).
        with patch(
            "catalog_import.pipeline.persistence.find_entry",
            side_effect=[None, existing],
        ):
            outcome = persister.persist(_record())

        assert isinstance(outcome, Skipped)
        assert count_entries(conn) == 1
        assert _stored_files(storage) == []

    def test_relay_failure_propagates(
        self, conn: sqlite3.Connection, storage, fake_images
    ) -> None:
        failing = fake_images(
            error=RelayError(RelayErrorKind.HTTP_STATUS, "HTTP 404: Not Found", status_code=404)
        )
        persister = CatalogPersister(conn, storage, failing)
        with pytest.raises(RelayError):
            persister.persist(_record())
        assert count_entries(conn) == 0
        assert _stored_files(storage) == []

    def test_storage_failure_is_persistence_error(
        self, persister: CatalogPersister, conn: sqlite3.Connection, storage
    ) -> None:
        with patch.object(storage, "store", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="Image upload failed"):
                persister.persist(_record())
        assert count_entries(conn) == 0

    def test_insert_failure_removes_blob(
        self, persister: CatalogPersister, conn: sqlite3.Connection, storage
    ) -> None:
        with patch(
            "catalog_import.pipeline.persistence.insert_entry",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            with pytest.raises(PersistenceError, match="Database insert error"):
                persister.persist(_record())
        assert _stored_files(storage) == []
        assert find_entry(conn, "Cool Tee", "artist1") is None

    def test_threshold_comes_from_persister(
        self, conn: sqlite3.Connection, storage, images
    ) -> None:
        persister = CatalogPersister(conn, storage, images, popularity_threshold=250)
        outcome = persister.persist(_record())
        assert isinstance(outcome, Success)
        assert outcome.entry.popularity_threshold == 250
