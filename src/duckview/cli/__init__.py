"""CLI for duckview.

Provides an interactive viewer and a schema dump for CSV and parquet files.

Usage:
    duckview view data/orders.parquet
    duckview view data/orders.csv --page-size 50 -v
    duckview schema data/orders.csv --json

Environment:
    Loads .env file from current directory if present.
    Any DUCKVIEW_* variable overrides the matching setting.
"""

from duckview.cli.main import app, main

__all__ = ["app", "main"]
