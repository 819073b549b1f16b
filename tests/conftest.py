"""Shared pytest fixtures for all tests."""

from pathlib import Path

import duckdb
import pytest

from duckview.core import ConnectionConfig, ConnectionManager, Settings

ORDERS_ROWS = 250


@pytest.fixture
def duckdb_conn():
    """Create an in-memory DuckDB connection for testing."""
    conn = duckdb.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def manager():
    """Initialized ConnectionManager; closed after the test."""
    manager = ConnectionManager(ConnectionConfig(duckdb_threads=1))
    manager.initialize()
    yield manager
    manager.close()


def _copy(query: str, path: Path, options: str) -> Path:
    conn = duckdb.connect(":memory:")
    try:
        conn.execute(f"COPY ({query}) TO '{path}' ({options})")
    finally:
        conn.close()
    return path


ORDERS_QUERY = f"""
    SELECT
        i AS id,
        'customer_' || (i % 7) AS customer,
        CASE WHEN i % 10 = 0 THEN NULL ELSE (i * 3) % 101 END AS amount,
        DATE '2024-01-01' + CAST(i AS INTEGER) AS ordered_on
    FROM range(1, {ORDERS_ROWS + 1}) t(i)
"""


@pytest.fixture
def orders_csv(tmp_path: Path) -> Path:
    """250-row CSV: id 1..250, a repeating customer, amount with NULLs, a date."""
    return _copy(ORDERS_QUERY, tmp_path / "orders.csv", "HEADER, DELIMITER ','")


@pytest.fixture
def orders_parquet(tmp_path: Path) -> Path:
    """Same rows as orders_csv, as parquet."""
    return _copy(ORDERS_QUERY, tmp_path / "orders.parquet", "FORMAT PARQUET")


@pytest.fixture
def small_csv(tmp_path: Path) -> Path:
    """Three rows, written by hand."""
    path = tmp_path / "small.csv"
    path.write_text("name,score\nada,3\nbob,1\ncy,2\n", encoding="utf-8")
    return path


@pytest.fixture
def empty_parquet(tmp_path: Path) -> Path:
    """Two columns, no rows."""
    return _copy(
        "SELECT 1 AS id, 'x' AS name WHERE false", tmp_path / "empty.parquet", "FORMAT PARQUET"
    )


class InterruptingConnection:
    """Wraps a connection; statements starting with `prefix` raise as if timed out."""

    def __init__(self, conn: duckdb.DuckDBPyConnection, prefix: str) -> None:
        self.conn = conn
        self.prefix = prefix

    def execute(self, sql: str, *args):
        if sql.startswith(self.prefix):
            raise duckdb.InterruptException("INTERRUPT Error: Interrupted!")
        return self.conn.execute(sql, *args)


@pytest.fixture
def interrupting():
    """Factory for connections that are interrupted on a chosen statement."""
    return InterruptingConnection
