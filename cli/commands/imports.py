"""Import commands: run the catalog import pipeline from the terminal."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import httpx
import typer

from catalog_import.db import open_catalog
from catalog_import.errors import ConfigurationError
from catalog_import.pipeline.models import Failed
from catalog_import.pipeline.orchestrator import build_pipeline

import_app = typer.Typer(help="Import product pages into the catalog.", no_args_is_help=True)


def read_urls_file(path: Path) -> list[str]:
    """Return the URLs listed in *path*, one per line.

    Blank lines and lines starting with ``#`` are ignored.
    """
    lines = path.read_text(encoding="utf-8").splitlines()
    return [
        line.strip()
        for line in lines
        if line.strip() and not line.strip().startswith("#")
    ]


@import_app.command("run")
def import_run(
    urls: Optional[List[str]] = typer.Argument(None, help="Product page URLs."),
    file: Optional[Path] = typer.Option(
        None, "--file", exists=True, dir_okay=False, help="File with one URL per line."
    ),
    delay: Optional[float] = typer.Option(
        None, "--delay", min=0.0, help="Seconds between requests (default: REQUEST_DELAY)."
    ),
) -> None:
    """Scrape each URL and add new products to the catalog.

    Exits with status 1 when any address failed.
    """
    addresses = list(urls or [])
    if file is not None:
        addresses.extend(read_urls_file(file))

    if not addresses:
        typer.echo("[import] No URLs provided. Pass URLs as arguments or use --file.")
        raise typer.Exit(1)

    with open_catalog() as conn, httpx.Client() as client:
        try:
            pipeline = build_pipeline(conn, client, delay=delay)
        except ConfigurationError as exc:
            typer.echo(f"[import] Configuration error: {exc}")
            raise typer.Exit(1)

        run = pipeline.run(addresses)
        for event in run:
            if event.log:
                typer.echo(event.log)

    failures = [o for o in run.outcomes if isinstance(o, Failed)]
    if failures:
        typer.echo("")
        typer.echo("Failures:")
        for failure in failures:
            kind = failure.kind.value
            if failure.detail:
                kind = f"{kind}/{failure.detail}"
            typer.echo(f"  - {failure.url}  [{kind}]  {failure.message}")
        raise typer.Exit(1)
