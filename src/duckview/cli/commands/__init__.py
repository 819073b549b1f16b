"""CLI command implementations."""

from duckview.cli.commands import schema, view

__all__ = [
    "schema",
    "view",
]
