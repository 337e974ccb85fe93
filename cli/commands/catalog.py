"""Catalog commands: inspect what has been imported."""

from __future__ import annotations

from typing import Optional

import typer

from catalog_import.db import open_catalog
from catalog_import.db.catalog import list_entries

catalog_app = typer.Typer(help="Inspect the catalog.", no_args_is_help=True)


@catalog_app.command("list")
def catalog_list(
    status: Optional[str] = typer.Option(None, "--status", help="active | won | inactive"),
) -> None:
    """List catalog entries, newest first."""
    with open_catalog() as conn:
        try:
            entries = list_entries(conn, status=status)
        except ValueError as exc:
            typer.echo(f"[catalog list] {exc}")
            raise typer.Exit(1)

    if not entries:
        typer.echo("[catalog list] No entries found.")
        return
    for e in entries:
        typer.echo(
            f"  {e.id}  [{e.status}]  {e.title!r} by {e.creator_handle}"
            f"  ({e.current_count}/{e.popularity_threshold})"
        )
