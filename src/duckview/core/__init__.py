"""Core module - configuration, connections, and shared models."""

from duckview.core.config import Settings, get_settings
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
from duckview.core.connections import ConnectionConfig, ConnectionManager, PageResult

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Connections
    "ConnectionConfig",
    "ConnectionManager",
    "PageResult",
    # Models - enums
    "ErrorCategory",
    "ErrorKind",
    "FileFormat",
    "SortDirection",
    # Models - base data structures
    "Column",
    "InternalLogicError",
    "Result",
    "ViewerError",
]
