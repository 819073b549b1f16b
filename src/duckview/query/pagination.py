"""Pagination arithmetic.

Pure, synchronous helpers. Pages are 1-based. Zero records still yields
one (empty) page.

Page-size changes keep the first previously visible row on screen: page 2
at 100 rows per page shows rows 101-200, so switching to 50 rows per page
lands on page 3 (rows 101-150).
"""

from __future__ import annotations

from collections.abc import Iterable


def max_page(record_count: int, page_size: int) -> int:
    """Number of pages, never less than 1."""
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if record_count <= 0:
        return 1
    return max(1, -(-record_count // page_size))


def clamp_page(page_number: int, last_page: int) -> int:
    """Clamp a page number into [1, max(1, last_page)]."""
    return min(max(1, page_number), max(1, last_page))


def offset(page_number: int, page_size: int) -> int:
    """Row offset of the first row on a page."""
    return (page_number - 1) * page_size


def next_page(page_number: int, last_page: int) -> int | None:
    """The following page, or None when already on the last page."""
    if page_number >= last_page:
        return None
    return page_number + 1


def prev_page(page_number: int) -> int | None:
    """The preceding page, or None when already on page 1."""
    if page_number <= 1:
        return None
    return page_number - 1


def first_page(page_number: int) -> int | None:
    """Page 1, or None when already there."""
    return None if page_number == 1 else 1


def last_page(page_number: int, last: int) -> int | None:
    """The last page, or None when already there."""
    return None if page_number == last else last


def page_for_new_size(
    page_number: int,
    old_size: int,
    new_size: int,
    record_count: int,
) -> int:
    """Page that keeps the first visible row visible after a size change."""
    first_row = offset(page_number, old_size)
    return clamp_page(first_row // new_size + 1, max_page(record_count, new_size))


def validate_page_size(page_size: int, allowed: Iterable[int]) -> bool:
    """Whether page_size is one of the allowed sizes."""
    return page_size in set(allowed)


def page_bounds(page_number: int, page_size: int, record_count: int) -> tuple[int, int]:
    """1-based (first, last) row numbers shown on a page; (0, 0) when empty."""
    first = offset(page_number, page_size) + 1
    last = min(record_count, page_number * page_size)
    if first > last:
        return (0, 0)
    return (first, last)
