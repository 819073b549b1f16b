"""File sources: registering CSV and parquet files as DuckDB relations."""

from duckview.sources.loader import (
    Relation,
    SchemaLoader,
    check_path,
    detect_format,
    get_file_extension,
)

__all__ = [
    "Relation",
    "SchemaLoader",
    "check_path",
    "detect_format",
    "get_file_extension",
]
