"""Session and view state models.

ViewState is immutable: the controller publishes a new snapshot for every
change and observers only ever read snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from duckview.core.models import Column, FileFormat, Result, SortDirection, ViewerError
from duckview.query.builder import QueryPlan
from duckview.query.generations import Generation
from duckview.query.pagination import max_page as compute_max_page
from duckview.query.pagination import page_bounds


class ControllerPhase(str, Enum):
    """Lifecycle phase of the controller."""

    IDLE = "idle"  # No session
    LOADING = "loading"  # File open in flight
    READY = "ready"  # Session active, view populated
    REFRESHING = "refreshing"  # Page/sort/size request in flight, old rows still shown


@dataclass(frozen=True)
class Session:
    """One opened file.

    Attributes:
        session_id: Increases with every committed file open
        path: File on disk
        file_format: CSV or parquet
        relation_name: DuckDB view bound to the file
        columns: Columns in source order
        total_row_count: Row count computed when the file was loaded
    """

    session_id: int
    path: Path
    file_format: FileFormat
    relation_name: str
    columns: tuple[Column, ...]
    total_row_count: int


@dataclass(frozen=True)
class ViewState:
    """Everything the rendering layer shows.

    page_number, page_size and the sort fields always describe the rows
    currently displayed, even while a request for other values is in flight.
    """

    phase: ControllerPhase = ControllerPhase.IDLE
    file_path: Path | None = None
    columns: tuple[Column, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()
    page_number: int = 1
    page_size: int = 20
    record_count: int = 0
    sort_column_index: int | None = None
    sort_direction: SortDirection = SortDirection.NONE
    loading: bool = False
    pagination_enabled: bool = True
    duration: float | None = None
    error: ViewerError | None = None

    @property
    def max_page(self) -> int:
        return compute_max_page(self.record_count, self.page_size)

    @property
    def row_bounds(self) -> tuple[int, int]:
        """1-based (first, last) record numbers on the current page."""
        return page_bounds(self.page_number, self.page_size, self.record_count)

    @property
    def has_session(self) -> bool:
        return self.file_path is not None

    def evolve(self, **changes: Any) -> ViewState:
        """Copy with changes applied."""
        return replace(self, **changes)


class RequestKind(str, Enum):
    """What a request fetches."""

    LOAD = "load"  # Register a file, count it, fetch page 1
    PAGE = "page"  # Fetch one page of the active session


@dataclass(frozen=True)
class Request:
    """One round trip to the engine, tagged with its generation.

    For LOAD requests session_id is None and path is set; for PAGE
    requests session_id names the session the plan was built against.
    """

    generation: Generation
    kind: RequestKind
    page_number: int
    page_size: int
    sort_column_index: int | None = None
    sort_direction: SortDirection = SortDirection.NONE
    session_id: int | None = None
    plan: QueryPlan | None = None
    path: Path | None = None
    file_format: FileFormat | None = None


@dataclass(frozen=True)
class Completion:
    """Result of a request, handed back to the interactive thread."""

    request: Request
    result: Result[Any] = field(compare=False)
