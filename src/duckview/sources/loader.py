"""File loader - registers CSV and parquet files as DuckDB views.

Nothing is copied into DuckDB: each file becomes a view over
read_csv_auto() or read_parquet(), so memory stays bounded no matter how
large the file is. Every load gets a fresh relation name; the previous
relation is dropped only when the controller commits the new session, so a
failed load never disturbs the relation currently on screen.
"""

from __future__ import annotations

import itertools
import os
import threading
from dataclasses import dataclass
from pathlib import Path

import duckdb

from duckview.core.logging import get_logger
from duckview.core.models import Column, ErrorKind, FileFormat, Result, ViewerError

logger = get_logger(__name__)

_EXTENSIONS: dict[str, FileFormat] = {
    "csv": FileFormat.CSV,
    "tsv": FileFormat.CSV,
    "parquet": FileFormat.PARQUET,
    "pq": FileFormat.PARQUET,
}

_SCAN_FUNCTIONS: dict[FileFormat, str] = {
    FileFormat.CSV: "read_csv_auto",
    FileFormat.PARQUET: "read_parquet",
}


@dataclass(frozen=True)
class Relation:
    """A file registered as a queryable view."""

    name: str
    path: Path
    file_format: FileFormat
    columns: tuple[Column, ...]


def get_file_extension(path: str | Path) -> str:
    """Lowercase extension without the dot, or "" when there is none."""
    return Path(path).suffix.lstrip(".").lower()


def detect_format(path: str | Path) -> FileFormat | None:
    """Guess the file format from the extension."""
    return _EXTENSIONS.get(get_file_extension(path))


def sql_string_literal(value: str) -> str:
    """Quote a value as a SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def check_path(path: Path) -> ViewerError | None:
    """Return an error if the path cannot be opened as a data file."""
    if not path.exists():
        return ViewerError(
            kind=ErrorKind.FILE_NOT_FOUND,
            message="File not found",
            path=str(path),
        )
    if not path.is_file():
        return ViewerError(
            kind=ErrorKind.FILE_UNREADABLE,
            message="Not a regular file",
            path=str(path),
        )
    if not os.access(path, os.R_OK):
        return ViewerError(
            kind=ErrorKind.FILE_UNREADABLE,
            message="Permission denied",
            path=str(path),
        )
    return None


class SchemaLoader:
    """Registers files as views and reads their schema.

    All methods take the connection as an argument and are meant to run
    inside a ConnectionManager job.
    """

    def __init__(self, prefix: str = "relation") -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)
        self._counter_lock = threading.Lock()

    def _next_relation_name(self) -> str:
        with self._counter_lock:
            return f"{self.prefix}_{next(self._counter)}"

    def load(
        self,
        conn: duckdb.DuckDBPyConnection,
        path: str | Path,
        file_format: FileFormat | None = None,
    ) -> Result[Relation]:
        """Register a file as a new view and describe it.

        Args:
            conn: DuckDB connection (held exclusively by the caller)
            path: Path to a CSV or parquet file
            file_format: Declared format; detected from the extension when None

        Returns:
            Result containing the Relation

        Raises:
            duckdb.InterruptException: If the query timeout fired while the
                file was being sniffed
        """
        path = Path(path).expanduser()

        error = check_path(path)
        if error is not None:
            return Result.fail(error)

        if file_format is None:
            file_format = detect_format(path)
        if file_format is None:
            extension = get_file_extension(path)
            return Result.fail(
                ViewerError(
                    kind=ErrorKind.UNSUPPORTED_FORMAT,
                    message="Unsupported or unknown file type",
                    detail=f".{extension}" if extension else "no extension",
                    path=str(path),
                )
            )

        relation_name = self._next_relation_name()
        scan = _SCAN_FUNCTIONS[file_format]

        try:
            conn.execute(
                f"CREATE VIEW {relation_name} AS "
                f"SELECT * FROM {scan}({sql_string_literal(str(path))})"
            )
        except duckdb.InterruptException:
            raise
        except duckdb.IOException as e:
            return Result.fail(
                ViewerError(
                    kind=ErrorKind.FILE_UNREADABLE,
                    message=f"Error reading file '{path}'",
                    detail=str(e),
                    path=str(path),
                )
            )
        except duckdb.Error as e:
            return Result.fail(
                ViewerError(
                    kind=ErrorKind.PARSE_ERROR,
                    message=f"Could not parse {file_format.value} file '{path}'",
                    detail=str(e),
                    path=str(path),
                )
            )

        try:
            columns = self.describe(conn, relation_name)
        except duckdb.InterruptException:
            self.drop(conn, relation_name)
            raise
        except duckdb.Error as e:
            self.drop(conn, relation_name)
            return Result.fail(
                ViewerError(
                    kind=ErrorKind.PARSE_ERROR,
                    message=f"Could not read the schema of '{path}'",
                    detail=str(e),
                    path=str(path),
                )
            )

        logger.info(
            "relation_registered",
            relation=relation_name,
            path=str(path),
            format=file_format.value,
            columns=len(columns),
        )
        return Result.ok(
            Relation(
                name=relation_name,
                path=path,
                file_format=file_format,
                columns=columns,
            )
        )

    def describe(self, conn: duckdb.DuckDBPyConnection, relation_name: str) -> tuple[Column, ...]:
        """Column names and declared types in source order."""
        rows = conn.execute(f"DESCRIBE {relation_name}").fetchall()
        return tuple(Column(name=str(row[0]), type=str(row[1])) for row in rows)

    def count_rows(self, conn: duckdb.DuckDBPyConnection, relation_name: str) -> int:
        """Total number of rows in a relation."""
        row = conn.execute(f"SELECT COUNT(*) FROM {relation_name}").fetchone()
        return int(row[0]) if row else 0

    def drop(self, conn: duckdb.DuckDBPyConnection, relation_name: str) -> None:
        """Drop a relation registered by an earlier load."""
        conn.execute(f"DROP VIEW IF EXISTS {relation_name}")
        logger.debug("relation_dropped", relation=relation_name)
