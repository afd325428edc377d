"""The ``memeforge`` Typer app; commands live in the ``*_cmd`` modules."""

from __future__ import annotations

from typing import Annotated

import typer

from memeforge.cli._helpers import console
from memeforge.cli.run_cmd import run, steps
from memeforge.cli.server_cmd import serve

app = typer.Typer(
    name="memeforge",
    help="Turn workplace frustrations into memes.",
    no_args_is_help=True,
    add_completion=False,
)

app.command(help="Generate a meme from a description of your frustrations.")(run)
app.command(help="Show the pipeline steps and the shapes they exchange.")(steps)
app.command(help="Serve the meme pipeline over HTTP.")(serve)


def _show_version(requested: bool) -> None:
    if not requested:
        return
    from memeforge import __version__

    console.print(f"memeforge {__version__}")
    raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_show_version,
            is_eager=True,
            help="Print the version and exit",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log every step at debug level")
    ] = False,
) -> None:
    """memeforge: turn workplace frustrations into memes."""
    from memeforge._log import setup_logging

    setup_logging(verbose=verbose)


def app_entry() -> None:
    app()
