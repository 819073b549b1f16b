"""Tests for base models."""

import pytest

from duckview.core.models import (
    Column,
    ErrorCategory,
    ErrorKind,
    Result,
    SortDirection,
    ViewerError,
)


class TestViewerError:
    """Tests for the error taxonomy."""

    @pytest.mark.parametrize(
        ("kind", "category"),
        [
            (ErrorKind.FILE_NOT_FOUND, ErrorCategory.FILE),
            (ErrorKind.IO, ErrorCategory.FILE),
            (ErrorKind.PARSE_ERROR, ErrorCategory.FORMAT),
            (ErrorKind.UNSUPPORTED_FORMAT, ErrorCategory.FORMAT),
            (ErrorKind.TIMEOUT, ErrorCategory.ENGINE),
            (ErrorKind.QUERY_SYNTAX, ErrorCategory.INTERNAL),
        ],
    )
    def test_category(self, kind, category):
        assert ViewerError(kind=kind, message="x").category is category

    def test_every_kind_has_a_category(self):
        for kind in ErrorKind:
            assert isinstance(kind.category, ErrorCategory)

    def test_str(self):
        assert str(ViewerError(kind=ErrorKind.IO, message="Could not read")) == "Could not read"
        error = ViewerError(kind=ErrorKind.IO, message="Could not read", detail="disk")
        assert str(error) == "Could not read: disk"


class TestResult:
    """Tests for Result."""

    def test_ok(self):
        result = Result.ok(3)
        assert result.success
        assert result.unwrap() == 3
        assert result.map(lambda v: v * 2).unwrap() == 6

    def test_fail(self):
        result = Result.fail(ViewerError(kind=ErrorKind.ENGINE, message="boom"))
        assert not result.success
        with pytest.raises(ValueError, match="boom"):
            result.unwrap()
        assert result.map(lambda v: v * 2) is result


class TestEnums:
    """Tests for SortDirection and Column."""

    def test_sort_cycle(self):
        assert SortDirection.NONE.cycled() is SortDirection.ASCENDING
        assert SortDirection.ASCENDING.cycled() is SortDirection.DESCENDING
        assert SortDirection.DESCENDING.cycled() is SortDirection.NONE

    def test_column_label(self):
        column = Column(name="amount", type="DECIMAL(10,2)")
        assert column.base_type == "DECIMAL"
        assert column.label == "amount\n(DECIMAL)"
