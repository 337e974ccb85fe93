"""Scraper package — address validation, page fetch & product parsing."""

from catalog_import.scraper.fetcher import UnlockerFetcher
from catalog_import.scraper.models import RawPage, ScrapedRecord
from catalog_import.scraper.parser import parse_product_page
from catalog_import.scraper.validator import is_valid_product_url

__all__ = [
    "UnlockerFetcher",
    "parse_product_page",
    "is_valid_product_url",
    "RawPage",
    "ScrapedRecord",
]
