"""Query plan construction for paginated, sorted reads.

Usage:
    plan = build_query_plan(
        relation_name="relation_1",
        columns=session.columns,
        page_number=2,
        page_size=50,
        sort_column_index=0,
        sort_direction=SortDirection.DESCENDING,
    )
    plan.page_sql  # SELECT * FROM relation_1 ORDER BY 1 DESC NULLS FIRST ... LIMIT 50 OFFSET 50

Column indices:
    Callers (the controller, the table widget) use 0-based column indices.
    DuckDB's positional ORDER BY is 1-based. The +1 happens here and nowhere
    else, so neither the view state nor the pagination code ever sees an
    engine position.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from duckview.core.models.base import Column, InternalLogicError, SortDirection
from duckview.query.pagination import offset as page_offset

_RELATION_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_DIRECTION_SQL: dict[SortDirection, str] = {
    SortDirection.ASCENDING: "ASC NULLS LAST",
    SortDirection.DESCENDING: "DESC NULLS FIRST",
}


@dataclass(frozen=True)
class QueryPlan:
    """SQL for one paginated round trip.

    Attributes:
        relation_name: Relation the plan reads from
        page_sql: Paginated (and optionally sorted) SELECT
        count_sql: COUNT(*) over the relation, or None when the count is cached
        limit: LIMIT of page_sql
        offset: OFFSET of page_sql
        order_by: ORDER BY clause body (without the keyword), or None
    """

    relation_name: str
    page_sql: str
    count_sql: str | None
    limit: int
    offset: int
    order_by: str | None = None


def engine_position(column_index: int) -> int:
    """Translate a 0-based column index into DuckDB's 1-based ORDER BY position."""
    return column_index + 1


def build_order_by(
    column_count: int,
    sort_column_index: int | None,
    sort_direction: SortDirection,
) -> str | None:
    """Build the ORDER BY body for a sort request.

    The chosen column comes first; every other column follows as a
    tiebreaker in the same direction so the ordering is total and a
    descending plan is the exact reverse of the ascending one.

    Raises:
        InternalLogicError: If the sort column is outside the relation
    """
    if sort_direction is SortDirection.NONE:
        return None
    if sort_column_index is None or not 0 <= sort_column_index < column_count:
        raise InternalLogicError(
            f"Sort column index {sort_column_index} outside 0..{column_count - 1}"
        )

    direction = _DIRECTION_SQL[sort_direction]
    positions = [engine_position(sort_column_index)] + [
        engine_position(i) for i in range(column_count) if i != sort_column_index
    ]
    return ", ".join(f"{position} {direction}" for position in positions)


def build_query_plan(
    relation_name: str,
    columns: Sequence[Column],
    page_number: int,
    page_size: int,
    sort_column_index: int | None,
    sort_direction: SortDirection,
    *,
    with_count: bool = True,
) -> QueryPlan:
    """Build the count and page queries for one page.

    Args:
        relation_name: Relation registered by the schema loader
        columns: The loader's column list (the only source of sort targets)
        page_number: 1-based page number
        page_size: Rows per page
        sort_column_index: 0-based column index, or None when unsorted
        sort_direction: Sort direction; NONE omits ORDER BY
        with_count: Include the COUNT(*) query

    Returns:
        QueryPlan

    Raises:
        InternalLogicError: For an unknown relation name, a page below 1,
            a non-positive page size or an out-of-range sort column
    """
    if not _RELATION_NAME.match(relation_name):
        raise InternalLogicError(f"Refusing to build a query for relation {relation_name!r}")
    if page_number < 1:
        raise InternalLogicError(f"Page number must be at least 1, got {page_number}")
    if page_size < 1:
        raise InternalLogicError(f"Page size must be positive, got {page_size}")

    order_by = build_order_by(len(columns), sort_column_index, sort_direction)
    start = page_offset(page_number, page_size)

    page_sql = f"SELECT * FROM {relation_name}"
    if order_by:
        page_sql += f" ORDER BY {order_by}"
    page_sql += f" LIMIT {page_size} OFFSET {start}"

    count_sql = f"SELECT COUNT(*) FROM {relation_name}" if with_count else None

    return QueryPlan(
        relation_name=relation_name,
        page_sql=page_sql,
        count_sql=count_sql,
        limit=page_size,
        offset=start,
        order_by=order_by,
    )
