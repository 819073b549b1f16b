"""Base models and types used across all modules.

This module contains the fundamental types shared by the loader, the query
layer, the gateway and the controller: the Result wrapper, the error
taxonomy and the small enums describing files and sort order.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# === Errors ===


class ErrorCategory(str, Enum):
    """User-facing error taxonomy."""

    FILE = "file"  # Not found, unreadable, permission
    FORMAT = "format"  # Unsupported or malformed CSV/parquet
    ENGINE = "engine"  # Connection/execution fault
    INTERNAL = "internal"  # A query we should never have produced


class ErrorKind(str, Enum):
    """Concrete failure raised by the loader or the gateway."""

    FILE_NOT_FOUND = "file_not_found"
    FILE_UNREADABLE = "file_unreadable"
    UNSUPPORTED_FORMAT = "unsupported_format"
    PARSE_ERROR = "parse_error"
    CONNECTION = "connection"
    IO = "io"
    TIMEOUT = "timeout"
    ENGINE = "engine"
    QUERY_SYNTAX = "query_syntax"
    INTERNAL = "internal"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]


_CATEGORIES: dict[ErrorKind, ErrorCategory] = {
    ErrorKind.FILE_NOT_FOUND: ErrorCategory.FILE,
    ErrorKind.FILE_UNREADABLE: ErrorCategory.FILE,
    ErrorKind.IO: ErrorCategory.FILE,
    ErrorKind.UNSUPPORTED_FORMAT: ErrorCategory.FORMAT,
    ErrorKind.PARSE_ERROR: ErrorCategory.FORMAT,
    ErrorKind.CONNECTION: ErrorCategory.ENGINE,
    ErrorKind.TIMEOUT: ErrorCategory.ENGINE,
    ErrorKind.ENGINE: ErrorCategory.ENGINE,
    ErrorKind.QUERY_SYNTAX: ErrorCategory.INTERNAL,
    ErrorKind.INTERNAL: ErrorCategory.INTERNAL,
}


class ViewerError(BaseModel):
    """A classified, displayable failure."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    detail: str | None = None
    path: str | None = None

    @property
    def category(self) -> ErrorCategory:
        return self.kind.category

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class InternalLogicError(RuntimeError):
    """Raised when code is asked to build something it never should.

    Signals a bug (an out-of-range sort column, a page below 1), not bad
    user input.
    """


class Result[T](BaseModel):
    """Result type for operations that can fail.

    Use this instead of exceptions for expected failures.
    Exceptions are reserved for unexpected/programming errors.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    value: T | None = None
    error: ViewerError | None = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, value: T, warnings: list[str] | None = None) -> Result[T]:
        """Create a successful result."""
        return cls(success=True, value=value, warnings=warnings or [])

    @classmethod
    def fail(cls, error: ViewerError) -> Result[T]:
        """Create a failed result."""
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Get the value or raise if failed."""
        if not self.success:
            raise ValueError(f"Result failed: {self.error}")
        assert self.value is not None
        return self.value

    def map(self, fn: Callable[[T], Any]) -> Result[Any]:
        """Transform the value if successful."""
        if self.success and self.value is not None:
            return Result.ok(fn(self.value), self.warnings)
        return self


# === Enums ===


class FileFormat(str, Enum):
    """File formats the loader can register."""

    CSV = "csv"
    PARQUET = "parquet"


class SortDirection(str, Enum):
    """Sort direction of the active sort column."""

    NONE = "none"
    ASCENDING = "asc"
    DESCENDING = "desc"

    def cycled(self) -> SortDirection:
        """Next direction when the same column header is clicked again."""
        if self is SortDirection.NONE:
            return SortDirection.ASCENDING
        if self is SortDirection.ASCENDING:
            return SortDirection.DESCENDING
        return SortDirection.NONE


# === Schema ===


class Column(BaseModel):
    """A column of a registered relation, in source order."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str

    @property
    def base_type(self) -> str:
        """Declared type without precision, e.g. DECIMAL(4,2) -> DECIMAL."""
        return self.type.split("(")[0].strip()

    @property
    def label(self) -> str:
        """Header text: the name with the base type underneath."""
        return f"{self.name}\n({self.base_type})"
