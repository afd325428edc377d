"""Shared CLI helpers: console and pipeline construction."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from memeforge.pipeline.runner import Pipeline

console = Console()


def build_pipeline_or_exit(config: Path | None) -> Pipeline:
    """Load settings and credentials and build the meme pipeline, or exit 1."""
    from memeforge.config import Credentials, load_dotenv_files, load_settings
    from memeforge.errors import ConfigurationFailure
    from memeforge.memes.workflow import pipeline_from_settings

    load_dotenv_files()
    try:
        settings = load_settings(config)
        return pipeline_from_settings(settings, Credentials.from_env(settings))
    except ConfigurationFailure as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None
