"""Catalog import backend: scrape product pages into the bidding catalog."""

__version__ = "0.1.0"
