"""TUI screens for duckview."""

from duckview.cli.tui.screens.error import ErrorScreen
from duckview.cli.tui.screens.open_file import OpenFileScreen

__all__ = [
    "ErrorScreen",
    "OpenFileScreen",
]
