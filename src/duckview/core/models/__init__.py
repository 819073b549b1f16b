"""Core models: ONLY truly shared base types.

Domain models live in their respective packages:
- sources/loader.py      → Relation
- query/builder.py       → QueryPlan
- query/generations.py   → Generation
- controller/state.py    → Session, ViewState
"""

from duckview.core.models.base import (
    Column,
    ErrorCategory,
    ErrorKind,
    FileFormat,
    InternalLogicError,
    Result,
    SortDirection,
    ViewerError,
)

__all__ = [
    "Column",
    "ErrorCategory",
    "ErrorKind",
    "FileFormat",
    "InternalLogicError",
    "Result",
    "SortDirection",
    "ViewerError",
]
