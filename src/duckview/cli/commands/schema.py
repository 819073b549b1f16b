"""Schema command - print the columns of a CSV or parquet file."""

from __future__ import annotations

from pathlib import Path

import duckdb
import typer
from rich.markup import escape
from rich.table import Table as RichTable

from duckview.cli.common import (
    FileArg,
    JsonFlag,
    VerboseOption,
    console,
    get_manager,
    setup_logging,
)
from duckview.core.connections import classify_error
from duckview.core.models import ViewerError
from duckview.sources.loader import Relation, SchemaLoader


def schema(
    file: FileArg,
    json_output: JsonFlag = False,
    verbose: VerboseOption = 0,
) -> None:
    """Print column names, types and the row count of a file.

    Examples:

        duckview schema data/orders.csv

        duckview schema data/orders.parquet --json
    """
    setup_logging(verbosity=verbose)

    relation, row_count, error = _describe(file)

    if error is not None:
        if json_output:
            console.print_json(
                data={"error": error.message, "kind": error.kind.value, "detail": error.detail}
            )
        else:
            console.print(f"[red]{escape(str(error))}[/red]")
        raise typer.Exit(1)

    assert relation is not None
    if json_output:
        _schema_json(relation, row_count)
    else:
        _schema_rich(relation, row_count)


def _describe(file: Path) -> tuple[Relation | None, int, ViewerError | None]:
    """Register the file, read its schema and count its rows."""
    loader = SchemaLoader()
    manager = get_manager()

    try:
        with manager.connection() as conn:
            result = loader.load(conn, file)
            if not result.success:
                return None, 0, result.error

            relation = result.unwrap()
            try:
                row_count = loader.count_rows(conn, relation.name)
            except duckdb.Error as e:
                return None, 0, classify_error(e, str(relation.path))
            finally:
                loader.drop(conn, relation.name)
            return relation, row_count, None
    finally:
        manager.close()


def _schema_json(relation: Relation, row_count: int) -> None:
    console.print_json(
        data={
            "path": str(relation.path),
            "format": relation.file_format.value,
            "row_count": row_count,
            "columns": [{"name": col.name, "type": col.type} for col in relation.columns],
        }
    )


def _schema_rich(relation: Relation, row_count: int) -> None:
    console.print(f"\n[bold]{relation.path.name}[/bold] ({relation.file_format.value})")
    console.print(f"[dim]{row_count:,} rows, {len(relation.columns)} columns[/dim]\n")

    table = RichTable(title="Columns")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="green")

    for i, col in enumerate(relation.columns, start=1):
        table.add_row(str(i), col.name, col.type)

    console.print(table)
