"""Serialized DuckDB access on a background worker.

This module owns the single DuckDB connection of a viewer process:
- One in-memory DuckDB connection (files are read through views)
- One worker thread; jobs never run on the caller's thread
- An exclusive lock around every job, so at most one query touches the
  connection at a time
- DuckDB exceptions classified into ViewerError results

Usage:
    from duckview.core.connections import ConnectionManager, ConnectionConfig

    manager = ConnectionManager(ConnectionConfig.from_settings(get_settings()))
    manager.initialize()

    # Run an arbitrary job (returns a Future[Result[T]])
    future = manager.submit(lambda conn: Result.ok(conn.execute("SELECT 42").fetchone()))

    # Run a query plan
    future = manager.execute(plan)
    result = future.result()
    if result.success:
        page = result.unwrap()

    manager.close()
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Generator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import duckdb

from duckview.core.formatting import format_rows
from duckview.core.logging import get_logger
from duckview.core.models.base import ErrorKind, InternalLogicError, Result, ViewerError

if TYPE_CHECKING:
    from duckview.core.config import Settings
    from duckview.query.builder import QueryPlan

logger = get_logger(__name__)

Job = Callable[[duckdb.DuckDBPyConnection], Result[Any]]


@dataclass
class ConnectionConfig:
    """Connection configuration for DuckDB.

    Attributes:
        duckdb_memory_limit: DuckDB memory limit (e.g., "2GB")
        duckdb_threads: Threads DuckDB may use inside one query
        query_timeout_seconds: Interrupt jobs running longer than this
        max_cell_width: Truncation width for rendered cells
        blob_preview_chars: Base64 characters kept for BLOB cells
    """

    duckdb_memory_limit: str = "2GB"
    duckdb_threads: int = 4
    query_timeout_seconds: float | None = None
    max_cell_width: int = 80
    blob_preview_chars: int = 25

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> ConnectionConfig:
        """Create config from application settings.

        Args:
            settings: Application settings
            **kwargs: Override any config attributes

        Returns:
            ConnectionConfig
        """
        values: dict[str, Any] = {
            "duckdb_memory_limit": settings.duckdb_memory_limit,
            "duckdb_threads": settings.duckdb_threads,
            "query_timeout_seconds": settings.query_timeout_seconds,
            "max_cell_width": settings.max_cell_width,
            "blob_preview_chars": settings.blob_preview_chars,
        }
        values.update(kwargs)
        return cls(**values)


@dataclass(frozen=True)
class PageResult:
    """Rows of one page plus the metadata the view needs.

    Attributes:
        rows: Rendered cells, one tuple per row
        total_count: COUNT(*) of the relation, or None if the plan had no count query
        elapsed: Wall time of the round trip in seconds
    """

    rows: tuple[tuple[str, ...], ...]
    total_count: int | None
    elapsed: float


def classify_error(exc: Exception, path: str | None = None) -> ViewerError:
    """Map a DuckDB (or internal) exception onto the viewer's error taxonomy."""
    detail = str(exc).strip() or type(exc).__name__

    if isinstance(exc, InternalLogicError):
        return ViewerError(kind=ErrorKind.INTERNAL, message="Internal error", detail=detail)
    if isinstance(exc, duckdb.InterruptException):
        return ViewerError(kind=ErrorKind.TIMEOUT, message="Query timed out", detail=detail)
    if isinstance(exc, duckdb.ConnectionException):
        return ViewerError(
            kind=ErrorKind.CONNECTION, message="Database connection failed", detail=detail
        )
    if isinstance(exc, duckdb.IOException):
        return ViewerError(
            kind=ErrorKind.IO, message="Could not read file", detail=detail, path=path
        )
    if isinstance(exc, duckdb.ParserException | duckdb.BinderException | duckdb.CatalogException):
        return ViewerError(
            kind=ErrorKind.QUERY_SYNTAX, message="Invalid query generated", detail=detail
        )
    if isinstance(exc, duckdb.InvalidInputException | duckdb.ConversionException):
        return ViewerError(
            kind=ErrorKind.PARSE_ERROR, message="Malformed data in file", detail=detail, path=path
        )
    return ViewerError(kind=ErrorKind.ENGINE, message="Query failed", detail=detail, path=path)


def fetch_page(
    conn: duckdb.DuckDBPyConnection,
    plan: QueryPlan,
    *,
    max_cell_width: int = 80,
    blob_preview_chars: int = 25,
) -> PageResult:
    """Run a plan on an already-held connection.

    Used inside jobs; callers on the interactive thread go through
    ConnectionManager.execute() instead.
    """
    start = time.perf_counter()

    rows = conn.execute(plan.page_sql).fetchall()
    total_count: int | None = None
    if plan.count_sql is not None:
        count_row = conn.execute(plan.count_sql).fetchone()
        total_count = int(count_row[0]) if count_row else 0

    rendered = format_rows(rows, max_cell_width, blob_preview_chars)
    elapsed = time.perf_counter() - start

    return PageResult(rows=rendered, total_count=total_count, elapsed=elapsed)


class Deadline:
    """Interrupts one job's connection once its timeout has passed.

    The timer fires on its own thread, so it can race with the end of the
    job. disarm() and expire() share a lock: once disarm() returns, no
    interrupt from this deadline can reach the connection, and the next
    job starts clean.
    """

    def __init__(self, conn: Any, timeout: float) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        self._armed = True
        self.fired = False
        self._timer = threading.Timer(timeout, self.expire)
        self._timer.daemon = True

    def start(self) -> None:
        self._timer.start()

    def expire(self) -> None:
        with self._lock:
            if not self._armed:
                return
            self.fired = True
            self._conn.interrupt()

    def disarm(self) -> None:
        with self._lock:
            self._armed = False
        self._timer.cancel()


@dataclass
class ConnectionManager:
    """Exclusive, off-thread access to one DuckDB connection.

    Provides:
    - submit(): run any job on the worker with the connection held
    - execute(): run a QueryPlan and return a PageResult
    - Proper cleanup on close

    Thread Safety:
    - Jobs run one at a time on a single worker thread
    - _conn_lock additionally guards the connection, so direct use through
      connection() from another thread cannot interleave with a job
    """

    config: ConnectionConfig = field(default_factory=ConnectionConfig)
    _conn: duckdb.DuckDBPyConnection | None = field(default=None, init=False, repr=False)
    _executor: ThreadPoolExecutor | None = field(default=None, init=False, repr=False)
    _conn_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _init_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _initialized: bool = field(default=False, init=False, repr=False)

    def initialize(self) -> None:
        """Open the DuckDB connection and start the worker.

        Safe to call multiple times (idempotent).

        Raises:
            RuntimeError: If initialization fails
        """
        with self._init_lock:
            if self._initialized:
                return

            try:
                self._init_duckdb()
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="duckview-engine"
                )
                self._initialized = True
            except Exception as e:
                self.close()
                raise RuntimeError(f"Failed to initialize connections: {e}") from e

    def _init_duckdb(self) -> None:
        """Initialize the in-memory DuckDB connection."""
        self._conn = duckdb.connect(":memory:")
        self._conn.execute(f"SET memory_limit='{self.config.duckdb_memory_limit}'")
        self._conn.execute(f"SET threads={int(self.config.duckdb_threads)}")
        logger.debug(
            "duckdb_connected",
            memory_limit=self.config.duckdb_memory_limit,
            threads=self.config.duckdb_threads,
        )

    def _ensure_initialized(self) -> None:
        """Raise if not initialized."""
        if not self._initialized:
            raise RuntimeError(
                "ConnectionManager not initialized. Call manager.initialize() first."
            )

    @property
    def initialized(self) -> bool:
        return self._initialized

    @contextmanager
    def connection(self) -> Generator[duckdb.DuckDBPyConnection]:
        """Get exclusive access to the DuckDB connection on the calling thread.

        Blocks while a job holds the connection. Meant for CLI commands and
        tests; the interactive thread must use submit() instead.

        Yields:
            DuckDB connection with exclusive access

        Raises:
            RuntimeError: If manager not initialized
        """
        self._ensure_initialized()
        assert self._conn is not None

        with self._conn_lock:
            yield self._conn

    def submit[T](self, job: Callable[[duckdb.DuckDBPyConnection], Result[T]]) -> Future[Result[T]]:
        """Run a job on the worker with exclusive access to the connection.

        DuckDB exceptions and InternalLogicError raised by the job are
        classified and returned as failed results; the future itself only
        raises for unexpected programming errors.

        Args:
            job: Callable receiving the connection and returning a Result

        Returns:
            Future resolving to the job's Result

        Raises:
            RuntimeError: If manager not initialized
        """
        self._ensure_initialized()
        assert self._executor is not None

        return self._executor.submit(self._run_job, job)

    def _run_job[T](self, job: Callable[[duckdb.DuckDBPyConnection], Result[T]]) -> Result[T]:
        conn = self._conn
        if conn is None:
            return Result.fail(
                ViewerError(kind=ErrorKind.CONNECTION, message="Database connection is closed")
            )

        with self._conn_lock, self._deadline(conn):
            try:
                return job(conn)
            except InternalLogicError as e:
                logger.error("internal_logic_error", error=str(e))
                return Result.fail(classify_error(e))
            except duckdb.Error as e:
                error = classify_error(e)
                logger.warning("job_failed", kind=error.kind.value, detail=error.detail)
                return Result.fail(error)

    @contextmanager
    def _deadline(self, conn: duckdb.DuckDBPyConnection) -> Generator[None]:
        """Interrupt the running query if it exceeds the configured timeout."""
        timeout = self.config.query_timeout_seconds
        if not timeout:
            yield
            return

        deadline = Deadline(conn, timeout)
        deadline.start()
        try:
            yield
        finally:
            deadline.disarm()

    def execute(self, plan: QueryPlan) -> Future[Result[PageResult]]:
        """Run a query plan on the worker.

        Returns:
            Future resolving to Result[PageResult]
        """

        def job(conn: duckdb.DuckDBPyConnection) -> Result[PageResult]:
            return Result.ok(
                fetch_page(
                    conn,
                    plan,
                    max_cell_width=self.config.max_cell_width,
                    blob_preview_chars=self.config.blob_preview_chars,
                )
            )

        return self.submit(job)

    def close(self) -> None:
        """Stop the worker and close the connection.

        Queued jobs that have not started are cancelled and a running query
        is interrupted. Safe to call multiple times.
        """
        if self._executor is not None:
            if self._conn is not None:
                self._conn.interrupt()
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None

        if self._conn is not None:
            try:
                self._conn.close()
            except duckdb.Error as e:
                logger.warning("duckdb_close_failed", error=str(e))
            self._conn = None

        self._initialized = False


__all__ = [
    "ConnectionConfig",
    "ConnectionManager",
    "Deadline",
    "PageResult",
    "classify_error",
    "fetch_page",
]
