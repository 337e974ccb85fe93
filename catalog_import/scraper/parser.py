"""Product page parser: turns page markup into a :class:`ScrapedRecord`.

Each required field is read through an ordered list of strategies and the
first non-empty value wins:

- title: ``h1.productPicker-title`` → ``og:title`` → first ``<h1>``
- creator handle: ``/@handle`` in the address → ``h2.productPicker-shop-name``
- image: ``og:image`` → ``img.productHero-image`` → first ``/products/`` image

The parser fails closed: if any required field is still empty after all
fallbacks, :func:`parse_product_page` returns ``None``.
"""

from __future__ import annotations

import hashlib
import html as html_lib
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from catalog_import.scraper.models import ScrapedRecord

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("404", "Error - Page Not Found")

_BY_SHOP_SUFFIX = re.compile(r"\s+by\s+[^|]+\|[^|]+$")
_TSHIRT_SUFFIX = re.compile(r"\s+T-Shirt$")
_HANDLE_IN_URL = re.compile(r"/@([^/?#]+)")
_HANDLE_IN_SHOP_NAME = re.compile(r"by\s+(\S+)", re.IGNORECASE)
_PRODUCT_ID = re.compile(r"/products/(\d+)/")
_PRICE = re.compile(r"\$?(\d+\.?\d*)")

# Checked in order; "/mens" does not match "/womens".
_CATEGORIES = ("mens", "womens", "kids")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def _meta(soup: BeautifulSoup, prop: str) -> str:
    tag = soup.find("meta", attrs={"property": prop})
    if tag is None:
        return ""
    return str(tag.get("content") or "")


def _first_text(soup: BeautifulSoup, selector: str) -> str:
    tag = soup.select_one(selector)
    return clean_text(tag.get_text()) if tag else ""


def _first_src(soup: BeautifulSoup, selector: str) -> str:
    tag = soup.select_one(selector)
    return str(tag.get("src") or "") if tag else ""


def _is_not_found_page(soup: BeautifulSoup) -> bool:
    title = soup.title.get_text() if soup.title else ""
    return any(marker in title for marker in _NOT_FOUND_MARKERS)


def normalize_title(title: str) -> str:
    """Strip the ``" by artist | Shop"`` and ``" T-Shirt"`` suffixes."""
    title = _BY_SHOP_SUFFIX.sub("", title).strip()
    return _TSHIRT_SUFFIX.sub("", title).strip()


def _extract_title(soup: BeautifulSoup) -> str:
    title = (
        _first_text(soup, "h1.productPicker-title")
        or clean_text(_meta(soup, "og:title"))
        or _first_text(soup, "h1")
    )
    return normalize_title(title)


def handle_from_url(url: str) -> Optional[str]:
    """Return the ``@handle`` embedded in a product address, if any."""
    match = _HANDLE_IN_URL.search(url)
    return match.group(1) if match else None


def _extract_creator(soup: BeautifulSoup, source_url: str) -> str:
    handle = handle_from_url(source_url)
    if handle:
        return handle
    # e.g. "Retail Trends T-Shirt by tobefonseca"
    shop_name = _first_text(soup, "h2.productPicker-shop-name")
    match = _HANDLE_IN_SHOP_NAME.search(shop_name)
    return match.group(1) if match else ""


def _extract_image(soup: BeautifulSoup) -> str:
    image_url = (
        _meta(soup, "og:image")
        or _first_src(soup, "img.productHero-image")
        or _first_src(soup, 'img[src*="/products/"]')
    )
    return html_lib.unescape(image_url).strip()


def product_id_from_image(url: str) -> Optional[str]:
    """Return the numeric product id from a ``/products/<id>/`` image path."""
    match = _PRODUCT_ID.search(url)
    return match.group(1) if match else None


def _canonical_id(soup: BeautifulSoup, image_url: str, source_url: str) -> str:
    product_id = product_id_from_image(image_url) or product_id_from_image(
        _first_src(soup, 'img[src*="/products/"]')
    )
    if product_id:
        return product_id
    digest = hashlib.sha1(source_url.encode("utf-8")).hexdigest()
    return f"url-{digest[:12]}"


def _extract_price(soup: BeautifulSoup) -> Optional[str]:
    price_text = _first_text(soup, "span.display-price.sale")
    match = _PRICE.search(price_text)
    return match.group(1) if match else None


def _category_from_url(url: str) -> Optional[str]:
    for category in _CATEGORIES:
        if f"/{category}" in url:
            return category
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_product_page(html: str, source_url: str) -> Optional[ScrapedRecord]:
    """Parse a product page into a :class:`ScrapedRecord`.

    Args:
        html: Page markup as returned by the fetcher.
        source_url: The address the markup was fetched from.  It carries the
            creator handle and is the seed of the fallback canonical id.

    Returns:
        The record, or ``None`` when the page is a "not found" page or any of
        title / creator handle / image reference cannot be extracted.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    if _is_not_found_page(soup):
        logger.warning("Not-found page for %s", source_url)
        return None

    title = _extract_title(soup)
    if not title:
        logger.warning("No title found on %s", source_url)
        return None

    creator = _extract_creator(soup, source_url)
    if not creator:
        logger.warning("No creator handle found on %s", source_url)
        return None

    image_url = _extract_image(soup)
    if not image_url:
        logger.warning("No image reference found on %s", source_url)
        return None

    description = clean_text(_meta(soup, "og:description")) or None

    record = ScrapedRecord(
        title=title,
        creator_handle=creator,
        image_url=image_url,
        canonical_id=_canonical_id(soup, image_url, source_url),
        source_url=source_url,
        price=_extract_price(soup),
        description=description,
        category=_category_from_url(source_url),
    )
    logger.debug("Parsed %r by %s from %s", record.title, record.creator_handle, source_url)
    return record
