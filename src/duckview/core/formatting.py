"""Cell formatting - turn DuckDB values into table text.

The table widget shows strings only. Values are rendered on the gateway
worker so the interactive thread never does per-cell work.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

NULL_TEXT = "NULL"
ELLIPSIS = "…"


def format_blob(value: bytes, preview_chars: int = 25) -> str:
    """Base64-encode a blob, keeping only the first preview_chars characters."""
    encoded = base64.b64encode(value).decode("ascii")
    if len(encoded) > preview_chars:
        return f"{encoded[:preview_chars]}..."
    return encoded


def _jsonable(value: Any) -> Any:
    """Convert nested values (LIST, STRUCT, MAP) into JSON-serialisable data."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    if value is None or isinstance(value, bool | int | float | str):
        return value
    return format_value(value)


def format_value(value: Any, preview_chars: int = 25) -> str:
    """Render a single value without truncation.

    Args:
        value: Python value as returned by DuckDB
        preview_chars: Base64 characters kept for BLOB values

    Returns:
        Display text
    """
    if value is None:
        return NULL_TEXT
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes | bytearray | memoryview):
        return format_blob(bytes(value), preview_chars)
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict | list | tuple):
        return json.dumps(_jsonable(value), separators=(",", ":"), ensure_ascii=False)
    return str(value)


def format_cell(value: Any, max_width: int = 80, preview_chars: int = 25) -> str:
    """Render a value and truncate it to max_width characters."""
    text = format_value(value, preview_chars)
    if max_width > 0 and len(text) > max_width:
        return text[: max_width - 1] + ELLIPSIS
    return text


def format_rows(
    rows: Sequence[Sequence[Any]],
    max_width: int = 80,
    preview_chars: int = 25,
) -> tuple[tuple[str, ...], ...]:
    """Render a batch of rows as immutable tuples of strings."""
    return tuple(
        tuple(format_cell(value, max_width, preview_chars) for value in row) for row in rows
    )
