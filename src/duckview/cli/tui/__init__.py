"""Textual TUI for duckview.

Provides the interactive table viewer: one page of rows at a time, with
pagination controls, sortable headers and an open-file dialog.
"""

from __future__ import annotations

from pathlib import Path


def run_app(path: Path | None = None, page_size: int | None = None) -> None:
    """Launch the Textual TUI application.

    Args:
        path: File to open on startup
        page_size: Initial rows per page (defaults to the configured size)
    """
    from duckview.cli.tui.app import DuckViewApp

    app = DuckViewApp(path=path, page_size=page_size)
    app.run()


__all__ = ["run_app"]
