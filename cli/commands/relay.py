"""Relay commands: run or exercise the image relay service."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from catalog_import.config import settings
from catalog_import.errors import RelayError

relay_app = typer.Typer(help="Image relay service.", no_args_is_help=True)


@relay_app.command("serve")
def relay_serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, help="Port (default: IMAGE_PROXY_PORT)."),
) -> None:
    """Run the image relay with uvicorn."""
    import uvicorn

    bind_port = port or settings.relay_port
    mode = "DISABLED (dev mode)" if settings.ignore_tls_hostname else "ENABLED"
    typer.echo(f"[relay] Serving on http://{host}:{bind_port}")
    typer.echo(f"[relay] TLS hostname validation: {mode}")
    uvicorn.run("catalog_import.relay.app:app", host=host, port=bind_port)


@relay_app.command("fetch")
def relay_fetch(
    url: str = typer.Argument(..., help="Image URL."),
    out: Path = typer.Option(..., "--out", help="Where to write the image bytes."),
) -> None:
    """Download one image through the in-process relay."""
    from catalog_import.relay.proxy import relay_image

    try:
        image = relay_image(url)
    except RelayError as exc:
        typer.echo(f"[relay fetch] {exc.relay_kind.value}: {exc}")
        raise typer.Exit(1)

    out.write_bytes(image.content)
    typer.echo(f"[relay fetch] {len(image.content)} bytes ({image.content_type}) → {out}")
