"""Main CLI application entry point."""

from __future__ import annotations

from typing import Annotated

import typer

from duckview import __version__
from duckview.cli.commands import schema, view
from duckview.cli.common import console

app = typer.Typer(
    name="duckview",
    help="DuckView - browse CSV and parquet files page by page.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"duckview {__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit",
        ),
    ] = False,
) -> None:
    """DuckView - browse CSV and parquet files page by page."""


# Register commands
app.command()(view.view)
app.command()(schema.schema)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
