"""Shared fixtures: in-memory catalog, temp blob storage and network fakes.

The fakes stand in for the two network-facing collaborators of the pipeline
(page fetcher and image source) so orchestrator and persistence tests run
without ``respx`` routes.
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Generator, Optional, Union

import pytest

from catalog_import.db.connection import get_connection
from catalog_import.db.migrations import init_db
from catalog_import.pipeline.persistence import CatalogPersister
from catalog_import.relay.proxy import RelayedImage
from catalog_import.scraper.models import RawPage
from catalog_import.storage import LocalBlobStorage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
IMAGE_URL = "https://cdn-images.threadless.com/threadless-media/products/4016887/shirt.png"


def product_page(
    title: str = "Cool Tee",
    image_url: str = IMAGE_URL,
    page_title: Optional[str] = None,
) -> str:
    """Minimal product page in the marketplace's markup."""
    return f"""\
<!DOCTYPE html>
<html>
<head>
  <title>{page_title or title + " | Threadless"}</title>
  <meta property="og:title" content="{title} T-Shirt by someone | Threadless">
  <meta property="og:image" content="{image_url}">
  <meta property="og:description" content="A fine design.">
</head>
<body>
  <h1 class="productPicker-title">{title} T-Shirt</h1>
  <span class="display-price sale">$14.00</span>
</body>
</html>
"""


class FakeFetcher:
    """Serves canned pages; values that are exceptions are raised instead."""

    def __init__(self, pages: dict[str, Union[str, Exception]]) -> None:
        self.pages = pages
        self.calls: list[str] = []

    def fetch(self, url: str) -> RawPage:
        self.calls.append(url)
        value = self.pages[url]
        if isinstance(value, Exception):
            raise value
        return RawPage(url=url, html=value, status_code=200)


class FakeImages:
    """Image source that returns fixed PNG bytes (or raises *error*)."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: list[str] = []

    def fetch(self, image_url: str) -> RelayedImage:
        self.calls.append(image_url)
        if self.error is not None:
            raise self.error
        return RelayedImage(content=PNG_BYTES, content_type="image/png", url=image_url)


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory connection with the catalog schema initialised."""
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def storage(tmp_path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "images", "http://cdn.test/images")


@pytest.fixture()
def images() -> FakeImages:
    return FakeImages()


@pytest.fixture()
def persister(conn, storage, images) -> CatalogPersister:
    return CatalogPersister(conn, storage, images, popularity_threshold=100)


@pytest.fixture()
def make_page() -> Callable[..., str]:
    return product_page


@pytest.fixture()
def fake_fetcher() -> Callable[[dict], FakeFetcher]:
    return FakeFetcher


@pytest.fixture()
def fake_images() -> Callable[..., FakeImages]:
    return FakeImages
