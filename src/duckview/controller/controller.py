"""Paginated query controller.

Turns intents into engine requests, runs them on the gateway's worker and
commits only the newest result to the view state.

Threading:
    Intent methods, process_completions() and observers run on the
    interactive thread, the only thread that touches ViewState and Session.
    The gateway worker never mutates them: when a job finishes, a
    Completion is put on a queue and the optional wakeup callable is invoked
    so the interactive thread knows to call process_completions().

Staleness:
    Every accepted intent takes a new generation before its job is
    submitted. A completion is applied only if its generation is still the
    current one and, for page requests, if it was built against the active
    session. Anything else is dropped silently. Superseded jobs are not
    aborted; the gateway runs jobs one at a time, so they only delay the
    start of the next one.

Usage:
    manager = ConnectionManager(ConnectionConfig.from_settings(settings))
    manager.initialize()
    controller = ViewerController(manager, settings, wakeup=app_wakeup)
    controller.subscribe(render)
    controller.open_file("data.parquet")
    ...
    controller.process_completions()  # on the interactive thread, after wakeup
"""

from __future__ import annotations

import itertools
import queue
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import duckdb

from duckview.controller.intents import (
    DismissError,
    FirstPage,
    GotoPage,
    Intent,
    LastPage,
    NextPage,
    OpenFile,
    PrevPage,
    Refresh,
    SetPageSize,
    SetSort,
    ToggleSort,
)
from duckview.controller.state import (
    Completion,
    ControllerPhase,
    Request,
    RequestKind,
    Session,
    ViewState,
)
from duckview.core.config import Settings, get_settings
from duckview.core.connections import PageResult, fetch_page
from duckview.core.logging import get_logger, log_context
from duckview.core.models import ErrorKind, FileFormat, Result, SortDirection, ViewerError
from duckview.query import pagination
from duckview.query.builder import QueryPlan, build_query_plan
from duckview.query.generations import GenerationTracker
from duckview.sources.loader import Relation, SchemaLoader

logger = get_logger(__name__)

Observer = Callable[[ViewState], None]


class Gateway(Protocol):
    """What the controller needs from the execution gateway."""

    def submit(
        self, job: Callable[[duckdb.DuckDBPyConnection], Result[Any]]
    ) -> Future[Result[Any]]: ...

    def execute(self, plan: QueryPlan) -> Future[Result[PageResult]]: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class LoadOutcome:
    """What a successful LOAD job hands back."""

    relation: Relation
    total_row_count: int
    page: PageResult


class ViewerController:
    """Owns the session and view state; reacts to intents.

    Every intent method returns True when the intent was accepted (a request
    was dispatched or state changed) and False when it was rejected as a
    no-op.
    """

    def __init__(
        self,
        gateway: Gateway,
        settings: Settings | None = None,
        *,
        loader: SchemaLoader | None = None,
        wakeup: Callable[[], Any] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            gateway: Execution gateway (normally an initialized ConnectionManager)
            settings: Application settings; defaults to get_settings()
            loader: Schema loader; a fresh one by default
            wakeup: Thread-safe callable invoked after each completion is queued
        """
        self.settings = settings or get_settings()
        self._gateway = gateway
        self._loader = loader or SchemaLoader()
        self._wakeup = wakeup
        self._tracker = GenerationTracker()
        self._completions: queue.SimpleQueue[Completion] = queue.SimpleQueue()
        self._session_ids = itertools.count(1)
        self._session: Session | None = None
        self._pending: Request | None = None
        self._observers: list[Observer] = []
        self._closed = False
        self._state = ViewState(page_size=self.settings.default_page_size)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> ViewState:
        """Latest view state snapshot."""
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def pending(self) -> Request | None:
        """The request whose result is awaited, if any."""
        return self._pending

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer called with every new snapshot.

        Returns:
            Callable that unregisters the observer
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self, state: ViewState) -> None:
        self._state = state
        for observer in list(self._observers):
            observer(state)

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def dispatch(self, intent: Intent) -> bool:
        """Handle a typed intent message."""
        if isinstance(intent, OpenFile):
            return self.open_file(intent.path, intent.file_format)
        if isinstance(intent, SetPageSize):
            return self.set_page_size(intent.page_size)
        if isinstance(intent, GotoPage):
            return self.goto_page(intent.page_number)
        if isinstance(intent, NextPage):
            return self.next_page()
        if isinstance(intent, PrevPage):
            return self.prev_page()
        if isinstance(intent, FirstPage):
            return self.first_page()
        if isinstance(intent, LastPage):
            return self.last_page()
        if isinstance(intent, SetSort):
            return self.set_sort(intent.column_index, intent.direction)
        if isinstance(intent, ToggleSort):
            return self.toggle_sort(intent.column_index)
        if isinstance(intent, Refresh):
            return self.refresh()
        if isinstance(intent, DismissError):
            return self.dismiss_error()
        raise TypeError(f"Unknown intent: {intent!r}")

    def open_file(self, path: str | Path, file_format: FileFormat | None = None) -> bool:
        """Open a file, replacing the current session once it loads.

        Always accepted, even while another request is in flight: the new
        generation makes that request stale. Sort is reset and page 1 is
        shown; the current page size is kept.
        """
        if self._closed:
            return False

        generation = self._tracker.next_generation()
        request = Request(
            generation=generation,
            kind=RequestKind.LOAD,
            page_number=1,
            page_size=self._state.page_size,
            path=Path(path),
            file_format=file_format,
        )
        logger.info("open_file", path=str(path), generation=str(generation))
        self._start(request, lambda: self._gateway.submit(self._load_job(request)))
        return True

    def set_page_size(self, page_size: int) -> bool:
        """Change the page size, keeping the first visible row on screen."""
        if not self._accepting("set_page_size"):
            return False
        if not pagination.validate_page_size(page_size, self.settings.page_sizes):
            logger.warning(
                "intent_rejected",
                intent="set_page_size",
                reason="page_size_not_allowed",
                page_size=page_size,
                allowed=list(self.settings.page_sizes),
            )
            return False

        state = self._state
        if page_size == state.page_size:
            return self._reject("set_page_size", "unchanged")

        target = pagination.page_for_new_size(
            state.page_number, state.page_size, page_size, state.record_count
        )
        return self._request_page(target, page_size=page_size)

    def goto_page(self, page_number: int) -> bool:
        """Jump to a page; out-of-range numbers are clamped."""
        if not self._accepting("goto_page"):
            return False
        target = pagination.clamp_page(page_number, self._state.max_page)
        if target == self._state.page_number:
            return self._reject("goto_page", "unchanged")
        return self._request_page(target)

    def next_page(self) -> bool:
        if not self._accepting("next_page"):
            return False
        target = pagination.next_page(self._state.page_number, self._state.max_page)
        if target is None:
            return self._reject("next_page", "at_last_page")
        return self._request_page(target)

    def prev_page(self) -> bool:
        if not self._accepting("prev_page"):
            return False
        target = pagination.prev_page(self._state.page_number)
        if target is None:
            return self._reject("prev_page", "at_first_page")
        return self._request_page(target)

    def first_page(self) -> bool:
        if not self._accepting("first_page"):
            return False
        target = pagination.first_page(self._state.page_number)
        if target is None:
            return self._reject("first_page", "at_first_page")
        return self._request_page(target)

    def last_page(self) -> bool:
        if not self._accepting("last_page"):
            return False
        target = pagination.last_page(self._state.page_number, self._state.max_page)
        if target is None:
            return self._reject("last_page", "at_last_page")
        return self._request_page(target)

    def set_sort(self, column_index: int | None, direction: SortDirection) -> bool:
        """Sort by a 0-based column index; NONE clears the sort.

        A sort change always goes back to page 1.
        """
        if not self._accepting("set_sort"):
            return False

        if direction is SortDirection.NONE:
            column_index = None
        elif column_index is None or not 0 <= column_index < len(self._state.columns):
            logger.warning(
                "intent_rejected",
                intent="set_sort",
                reason="column_out_of_range",
                column_index=column_index,
                column_count=len(self._state.columns),
            )
            return False

        state = self._state
        if (column_index, direction) == (state.sort_column_index, state.sort_direction):
            return self._reject("set_sort", "unchanged")

        return self._request_page(1, sort_column_index=column_index, sort_direction=direction)

    def toggle_sort(self, column_index: int) -> bool:
        """Header click: NONE -> ASCENDING -> DESCENDING -> NONE on one column."""
        state = self._state
        if column_index == state.sort_column_index:
            direction = state.sort_direction.cycled()
        else:
            direction = SortDirection.ASCENDING
        return self.set_sort(column_index, direction)

    def refresh(self) -> bool:
        """Re-run the current page."""
        if not self._accepting("refresh"):
            return False
        return self._request_page(self._state.page_number)

    def dismiss_error(self) -> bool:
        """Clear the error after the rendering layer has shown it."""
        if self._state.error is None:
            return False
        self._publish(self._state.evolve(error=None))
        return True

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _accepting(self, intent: str) -> bool:
        """Common guard for page, size and sort intents."""
        if self._closed:
            return self._reject(intent, "closed")
        if self._state.loading:
            return self._reject(intent, "request_in_flight")
        if self._session is None:
            return self._reject(intent, "no_session")
        return True

    def _reject(self, intent: str, reason: str) -> bool:
        logger.debug("intent_rejected", intent=intent, reason=reason)
        return False

    def _request_page(
        self,
        page_number: int,
        *,
        page_size: int | None = None,
        sort_column_index: int | None = None,
        sort_direction: SortDirection | None = None,
    ) -> bool:
        session = self._session
        assert session is not None

        state = self._state
        if page_size is None:
            page_size = state.page_size
        if sort_direction is None:
            sort_column_index = state.sort_column_index
            sort_direction = state.sort_direction

        plan = build_query_plan(
            session.relation_name,
            session.columns,
            page_number,
            page_size,
            sort_column_index,
            sort_direction,
            with_count=False,
        )
        request = Request(
            generation=self._tracker.next_generation(),
            kind=RequestKind.PAGE,
            page_number=page_number,
            page_size=page_size,
            sort_column_index=sort_column_index,
            sort_direction=sort_direction,
            session_id=session.session_id,
            plan=plan,
        )
        with log_context(session_id=session.session_id):
            logger.debug(
                "page_requested",
                generation=str(request.generation),
                page=page_number,
                page_size=page_size,
                sort_column=sort_column_index,
                sort_direction=sort_direction.value,
            )
        self._start(request, lambda: self._gateway.execute(plan))
        return True

    def _start(self, request: Request, submit: Callable[[], Future[Result[Any]]]) -> None:
        """Disable controls, submit the job and wire up its completion."""
        self._pending = request
        phase = (
            ControllerPhase.LOADING
            if request.kind is RequestKind.LOAD
            else ControllerPhase.REFRESHING
        )
        self._publish(self._state.evolve(phase=phase, loading=True, pagination_enabled=False))

        try:
            future = submit()
        except RuntimeError as e:
            logger.error("submit_failed", error=str(e))
            future = Future()
            future.set_result(
                Result.fail(
                    ViewerError(
                        kind=ErrorKind.CONNECTION,
                        message="Database connection is not available",
                        detail=str(e),
                    )
                )
            )

        future.add_done_callback(lambda f: self._on_done(request, f))

    def _load_job(
        self, request: Request
    ) -> Callable[[duckdb.DuckDBPyConnection], Result[LoadOutcome]]:
        """Build the worker job for a LOAD request: register, count, fetch page 1."""
        loader = self._loader
        settings = self.settings
        assert request.path is not None
        path = request.path

        def job(conn: duckdb.DuckDBPyConnection) -> Result[LoadOutcome]:
            start = time.perf_counter()
            loaded = loader.load(conn, path, request.file_format)
            if not loaded.success:
                assert loaded.error is not None
                return Result.fail(loaded.error)

            relation = loaded.unwrap()
            try:
                total = loader.count_rows(conn, relation.name)
                plan = build_query_plan(
                    relation.name,
                    relation.columns,
                    1,
                    request.page_size,
                    None,
                    SortDirection.NONE,
                    with_count=False,
                )
                page = fetch_page(
                    conn,
                    plan,
                    max_cell_width=settings.max_cell_width,
                    blob_preview_chars=settings.blob_preview_chars,
                )
            except duckdb.Error:
                loader.drop(conn, relation.name)
                raise

            elapsed = time.perf_counter() - start
            page = PageResult(rows=page.rows, total_count=total, elapsed=elapsed)
            return Result.ok(LoadOutcome(relation, total, page))

        return job

    def _on_done(self, request: Request, future: Future[Result[Any]]) -> None:
        """Runs on the worker thread: hand the outcome to the interactive thread."""
        if self._closed or future.cancelled():
            return

        exc = future.exception()
        if exc is not None:
            logger.error(
                "job_crashed",
                kind=request.kind.value,
                generation=str(request.generation),
                error=repr(exc),
            )
            result: Result[Any] = Result.fail(
                ViewerError(kind=ErrorKind.INTERNAL, message="Unexpected error", detail=repr(exc))
            )
        else:
            result = future.result()

        self._completions.put(Completion(request=request, result=result))
        if self._wakeup is not None:
            self._wakeup()

    # ------------------------------------------------------------------
    # Completions
    # ------------------------------------------------------------------

    def process_completions(self, *, block: bool = False, timeout: float | None = None) -> int:
        """Apply queued completions on the interactive thread.

        Args:
            block: Wait for at least one completion before draining
            timeout: Maximum wait in seconds when blocking

        Returns:
            Number of completions applied (stale ones are not counted)
        """
        applied = 0
        try:
            completion = self._completions.get(block=block, timeout=timeout)
        except queue.Empty:
            return 0

        while True:
            if self._apply(completion):
                applied += 1
            try:
                completion = self._completions.get_nowait()
            except queue.Empty:
                return applied

    def wait_until_idle(self, timeout: float = 30.0) -> ViewState:
        """Block until no request is in flight.

        For scripts and tests only; the interactive thread must never call
        this.

        Raises:
            TimeoutError: If a request is still in flight after timeout seconds
        """
        deadline = time.monotonic() + timeout
        while self._state.loading:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError(f"Request still in flight after {timeout}s")
            self.process_completions(block=True, timeout=remaining)
        return self._state

    def _is_stale(self, request: Request) -> bool:
        if self._closed or not self._tracker.is_current(request.generation):
            return True
        if request.kind is RequestKind.PAGE:
            return self._session is None or request.session_id != self._session.session_id
        return False

    def _apply(self, completion: Completion) -> bool:
        request = completion.request
        result = completion.result

        if self._is_stale(request):
            logger.debug(
                "stale_completion_discarded",
                kind=request.kind.value,
                generation=str(request.generation),
            )
            if request.kind is RequestKind.LOAD and result.success and not self._closed:
                self._release(result.unwrap().relation.name)
            return False

        self._pending = None
        if not result.success:
            assert result.error is not None
            self._fail(request, result.error)
        elif request.kind is RequestKind.LOAD:
            self._commit_load(request, result.unwrap())
        else:
            self._commit_page(request, result.unwrap())
        return True

    def _commit_load(self, request: Request, outcome: LoadOutcome) -> None:
        previous = self._session
        relation = outcome.relation
        session = Session(
            session_id=next(self._session_ids),
            path=relation.path,
            file_format=relation.file_format,
            relation_name=relation.name,
            columns=relation.columns,
            total_row_count=outcome.total_row_count,
        )
        self._session = session
        self._tracker.reset()
        if previous is not None:
            self._release(previous.relation_name)

        with log_context(session_id=session.session_id):
            logger.info(
                "session_opened",
                path=str(session.path),
                relation=session.relation_name,
                columns=len(session.columns),
                rows=session.total_row_count,
                duration=round(outcome.page.elapsed, 4),
            )

        self._publish(
            self._state.evolve(
                phase=ControllerPhase.READY,
                file_path=session.path,
                columns=session.columns,
                rows=outcome.page.rows,
                page_number=1,
                page_size=request.page_size,
                record_count=session.total_row_count,
                sort_column_index=None,
                sort_direction=SortDirection.NONE,
                loading=False,
                pagination_enabled=True,
                duration=outcome.page.elapsed,
                error=None,
            )
        )

    def _commit_page(self, request: Request, page: PageResult) -> None:
        session = self._session
        assert session is not None

        record_count = session.total_row_count
        if page.total_count is not None:
            record_count = page.total_count

        with log_context(session_id=session.session_id):
            logger.debug(
                "page_committed",
                generation=str(request.generation),
                page=request.page_number,
                rows=len(page.rows),
                duration=round(page.elapsed, 4),
            )

        self._publish(
            self._state.evolve(
                phase=ControllerPhase.READY,
                rows=page.rows,
                page_number=request.page_number,
                page_size=request.page_size,
                record_count=record_count,
                sort_column_index=request.sort_column_index,
                sort_direction=request.sort_direction,
                loading=False,
                pagination_enabled=True,
                duration=page.elapsed,
                error=None,
            )
        )

    def _fail(self, request: Request, error: ViewerError) -> None:
        logger.warning(
            "request_failed",
            kind=request.kind.value,
            generation=str(request.generation),
            error_kind=error.kind.value,
            detail=error.detail,
        )
        phase = ControllerPhase.READY if self._session is not None else ControllerPhase.IDLE
        self._publish(
            self._state.evolve(
                phase=phase,
                loading=False,
                pagination_enabled=True,
                error=error,
            )
        )

    def _release(self, relation_name: str) -> None:
        """Drop a relation nobody will read again (fire-and-forget)."""
        loader = self._loader

        def job(conn: duckdb.DuckDBPyConnection) -> Result[str]:
            loader.drop(conn, relation_name)
            return Result.ok(relation_name)

        try:
            self._gateway.submit(job)
        except RuntimeError as e:
            logger.warning("relation_release_failed", relation=relation_name, error=str(e))

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop accepting intents, discard pending work and close the gateway."""
        if self._closed:
            return
        self._closed = True
        self._pending = None
        self._observers.clear()
        self._gateway.close()
        logger.debug("controller_closed")
