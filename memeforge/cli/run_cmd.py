"""Run commands: run, steps."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.markup import escape
from rich.table import Table

from memeforge.cli._helpers import build_pipeline_or_exit, console

if TYPE_CHECKING:
    from memeforge.memes.models import MemeArtifact, MemeError


def run(
    text: Annotated[str, typer.Argument(help="What is frustrating you, in your own words")],
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to a settings YAML file")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Print the result as JSON")] = False,
) -> None:
    """Generate a meme from a description of your frustrations."""
    from memeforge.memes.models import MemeError
    from memeforge.memes.workflow import create_meme

    pipeline = build_pipeline_or_exit(config)

    if json_output:
        result = asyncio.run(create_meme(text, pipeline))
        typer.echo(result.model_dump_json(indent=2))
    else:
        with console.status("[dim]Generating meme...[/dim]"):
            result = asyncio.run(create_meme(text, pipeline))
        if isinstance(result, MemeError):
            _display_error(result)
        else:
            _display_artifact(result)

    if isinstance(result, MemeError):
        raise typer.Exit(1)


def _display_artifact(artifact: MemeArtifact) -> None:
    table = Table(title="Meme", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Template", escape(artifact.template_name))
    table.add_row("Top text", escape(artifact.top_text))
    table.add_row("Bottom text", escape(artifact.bottom_text))
    table.add_row("Image", artifact.image_url)
    table.add_row("Page", artifact.page_url)
    console.print(table)


def _display_error(error: MemeError) -> None:
    console.print(f"[red]Failed at {error.stage}[/red] ({error.reason})")
    console.print(escape(error.message))
    if error.detail and error.detail not in error.message:
        console.print(f"[dim]{escape(error.detail)}[/dim]")


def steps() -> None:
    """Show the steps of the meme pipeline and the shapes they exchange."""
    from memeforge.config import Credentials, Settings
    from memeforge.memes.workflow import pipeline_from_settings

    pipeline = pipeline_from_settings(Settings(), Credentials())

    table = Table(title=f"Pipeline: {pipeline.name}")
    table.add_column("#", justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Input")
    table.add_column("Output")
    table.add_column("Description")
    for index, s in enumerate(pipeline.steps, 1):
        table.add_row(
            str(index),
            s.name,
            escape(s.input_shape.describe()),
            escape(s.output_shape.describe()),
            s.description,
        )
    console.print(table)
