"""Command-line interface for the catalog import backend."""
