"""Shared CLI utilities and constants."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console

from duckview.core import ConnectionConfig, ConnectionManager, get_settings
from duckview.core.logging import configure_logging

# Load .env file from current directory (DUCKVIEW_* overrides)
load_dotenv()

# Shared console instance
console = Console()

# Log file used while the TUI owns the terminal
TUI_LOG_FILE = Path("duckview.log")

# Common type aliases for typer options
FileArg = Annotated[
    Path,
    typer.Argument(
        help="CSV or parquet file",
        dir_okay=False,
        resolve_path=True,
    ),
]

OptionalFileArg = Annotated[
    Path | None,
    typer.Argument(
        help="CSV or parquet file to open on startup",
        dir_okay=False,
        resolve_path=True,
    ),
]

PageSizeOption = Annotated[
    int | None,
    typer.Option(
        "--page-size",
        "-n",
        help="Rows per page (one of the configured page sizes)",
    ),
]

JsonFlag = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output as JSON for scripting",
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v=INFO, -vv=DEBUG)",
    ),
]


def setup_logging(verbosity: int = 0, log_file: Path | None = None) -> None:
    """Configure structured logging based on verbosity level.

    Args:
        verbosity: 0=configured level (WARNING by default), 1=INFO, 2+=DEBUG
        log_file: Write logs here instead of stderr
    """
    settings = get_settings()
    if verbosity >= 2:
        level = "DEBUG"
    elif verbosity >= 1:
        level = "INFO"
    else:
        level = settings.log_level

    configure_logging(
        log_level=level,
        log_format=settings.log_format,
        show_timestamps=verbosity >= 1 or log_file is not None,
        color=settings.log_format == "console",
        log_file=log_file,
    )


def get_manager() -> ConnectionManager:
    """Create and initialize a ConnectionManager from the settings.

    Returns the manager. Caller is responsible for closing it.
    """
    manager = ConnectionManager(ConnectionConfig.from_settings(get_settings()))
    try:
        manager.initialize()
    except RuntimeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    return manager
