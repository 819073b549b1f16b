"""Typed intents sent from the rendering layer to the controller."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from duckview.core.models import FileFormat, SortDirection


@dataclass(frozen=True)
class OpenFile:
    path: Path | str
    file_format: FileFormat | None = None


@dataclass(frozen=True)
class SetPageSize:
    page_size: int


@dataclass(frozen=True)
class GotoPage:
    page_number: int


@dataclass(frozen=True)
class NextPage:
    pass


@dataclass(frozen=True)
class PrevPage:
    pass


@dataclass(frozen=True)
class FirstPage:
    pass


@dataclass(frozen=True)
class LastPage:
    pass


@dataclass(frozen=True)
class SetSort:
    """Sort by a column; column_index is 0-based, as the table widget reports it."""

    column_index: int | None
    direction: SortDirection


@dataclass(frozen=True)
class ToggleSort:
    """Header click: cycle the sort on a column."""

    column_index: int


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class DismissError:
    pass


Intent = (
    OpenFile
    | SetPageSize
    | GotoPage
    | NextPage
    | PrevPage
    | FirstPage
    | LastPage
    | SetSort
    | ToggleSort
    | Refresh
    | DismissError
)
