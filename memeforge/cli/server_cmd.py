"""Server command: serve."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from memeforge.cli._helpers import build_pipeline_or_exit, console


def serve(
    host: Annotated[str, typer.Option(help="Interface to listen on")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="TCP port for the HTTP server")] = 8000,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to a settings YAML file")
    ] = None,
    cors_origin: Annotated[
        list[str] | None,
        typer.Option("--cors-origin", help="Browser origin allowed to call the API (repeatable)"),
    ] = None,
) -> None:
    """Serve the meme pipeline over HTTP."""
    from memeforge.server.app import run_server

    pipeline = build_pipeline_or_exit(config)

    console.print(f"Serving [cyan]{pipeline.name}[/cyan] on http://{host}:{port}")
    console.print(f"  Endpoint: POST http://{host}:{port}/v1/memes")
    if cors_origin:
        console.print(f"  Allowed origins: {', '.join(cors_origin)}")

    run_server(pipeline, host=host, port=port, cors_origins=cors_origin)
