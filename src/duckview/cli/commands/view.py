"""View command - browse a file page by page in the TUI."""

from __future__ import annotations

import typer

from duckview.cli.common import (
    TUI_LOG_FILE,
    OptionalFileArg,
    PageSizeOption,
    VerboseOption,
    console,
    setup_logging,
)
from duckview.core import get_settings
from duckview.sources.loader import check_path


def view(
    file: OptionalFileArg = None,
    page_size: PageSizeOption = None,
    verbose: VerboseOption = 0,
) -> None:
    """Open the interactive viewer.

    Press o inside the viewer to open another file.

    Examples:

        duckview view data/orders.parquet

        duckview view data/orders.csv --page-size 50

        duckview view -vv   # debug log written to ./duckview.log
    """
    settings = get_settings()

    if page_size is None:
        page_size = settings.default_page_size
    elif page_size not in settings.page_sizes:
        allowed = ", ".join(str(size) for size in settings.page_sizes)
        console.print(f"[red]Invalid page size {page_size}; choose one of {allowed}[/red]")
        raise typer.Exit(1)

    if file is not None:
        error = check_path(file)
        if error is not None:
            console.print(f"[red]{error.message}: {error.path}[/red]")
            raise typer.Exit(1)

    # The TUI owns the terminal
    setup_logging(verbosity=verbose, log_file=TUI_LOG_FILE)

    from duckview.cli.tui import run_app

    run_app(file, page_size=page_size)
