"""Catalog import CLI — entry-point for all backend operations.

Usage:
    python cli/main.py --help

Command groups:
    db        → catalog database
    scrape    → fetch and parse one product page (no writes)
    import    → run the import pipeline
    catalog   → inspect imported entries
    relay     → image relay service
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that
# `from catalog_import.xxx import ...` works when the CLI is invoked as
# `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import httpx
import typer

from catalog_import.config import settings
from catalog_import.db import open_catalog
from catalog_import.db.migrations import current_version
from catalog_import.errors import ConfigurationError, FetchError, ValidationError
from catalog_import.logging_config import configure_logging

from cli.commands.catalog import catalog_app
from cli.commands.imports import import_app
from cli.commands.relay import relay_app

app = typer.Typer(
    name="catalog-import",
    help="Catalog import backend CLI.",
    no_args_is_help=True,
)
app.add_typer(import_app, name="import")
app.add_typer(catalog_app, name="catalog")
app.add_typer(relay_app, name="relay")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging before any sub-command runs."""
    configure_logging("DEBUG" if verbose else "WARNING")


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite catalog (create tables if they do not exist)."""
    settings.ensure_workspace()
    with open_catalog() as conn:
        version = current_version(conn)
    typer.echo(f"[db init] Database ready at {settings.db_path} (schema v{version})")


# ---------------------------------------------------------------------------
# Scrape command
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="Product page URL to scrape."),
) -> None:
    """Fetch one product page and print the parsed record (nothing is stored)."""
    from catalog_import.scraper import UnlockerFetcher, parse_product_page

    typer.echo(f"[scrape] Fetching {url!r} …")
    with httpx.Client() as client:
        try:
            fetcher = UnlockerFetcher.from_settings(client)
            raw = fetcher.fetch(url)
        except (ConfigurationError, ValidationError) as exc:
            typer.echo(f"[scrape] {exc}")
            raise typer.Exit(1)
        except FetchError as exc:
            typer.echo(f"[scrape] Fetch failed ({exc.fetch_kind.value}): {exc}")
            raise typer.Exit(1)

    typer.echo(f"[scrape] HTTP {raw.status_code} — parsing {len(raw.html)} chars …")
    record = parse_product_page(raw.html, url)
    if record is None:
        typer.echo("[scrape] Could not parse a product record from this page.")
        raise typer.Exit(1)

    typer.echo(f"[scrape] Title    : {record.title}")
    typer.echo(f"[scrape] Creator  : {record.creator_handle}")
    typer.echo(f"[scrape] Image    : {record.image_url}")
    typer.echo(f"[scrape] Item no. : {record.canonical_id}")
    typer.echo(f"[scrape] Price    : {record.price or '(none)'}")
    typer.echo(f"[scrape] Category : {record.category or '(none)'}")
    if record.description:
        typer.echo("")
        typer.echo(record.description)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
