"""Tests for ViewerController.

All jobs go through DeferredGateway, so the tests decide exactly when each
request completes and in which order.
"""

from pathlib import Path

import pytest

from duckview.controller import (
    ControllerPhase,
    GotoPage,
    NextPage,
    OpenFile,
    SetPageSize,
    SetSort,
    ToggleSort,
    ViewerController,
)
from duckview.core.models import ErrorKind, SortDirection, ViewerError


def relation_exists(conn, name: str) -> bool:
    row = conn.execute(
        "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?", [name]
    ).fetchone()
    return bool(row and row[0])


class TestOpenFile:
    """Opening files and the LOADING phase."""

    def test_initial_state(self, controller):
        state = controller.state

        assert state.phase is ControllerPhase.IDLE
        assert state.rows == ()
        assert state.page_size == 20
        assert state.pagination_enabled
        assert not state.has_session

    def test_open_shows_loading(self, controller, orders_csv):
        assert controller.open_file(orders_csv)

        state = controller.state
        assert state.phase is ControllerPhase.LOADING
        assert state.loading
        assert not state.pagination_enabled

    def test_open_commits_first_page(self, opened, orders_csv):
        state = opened.state

        assert state.phase is ControllerPhase.READY
        assert state.file_path == orders_csv
        assert [c.name for c in state.columns] == ["id", "customer", "amount", "ordered_on"]
        assert state.record_count == 250
        assert state.page_number == 1
        assert state.max_page == 13
        assert len(state.rows) == 20
        assert state.rows[0][0] == "1"
        assert not state.loading
        assert state.pagination_enabled
        assert state.duration is not None
        assert state.error is None
        assert opened.session.session_id == 1

    def test_open_missing_file_without_session(self, controller, gateway, settle, tmp_path):
        controller.open_file(tmp_path / "missing.csv")
        settle()

        state = controller.state
        assert state.phase is ControllerPhase.IDLE
        assert state.error.kind is ErrorKind.FILE_NOT_FOUND
        assert state.pagination_enabled
        assert controller.session is None
        assert not controller.next_page()

    def test_failed_open_keeps_current_session(self, opened, settle, tmp_path, orders_csv):
        rows = opened.state.rows

        opened.open_file(tmp_path / "missing.csv")
        settle()

        state = opened.state
        assert state.phase is ControllerPhase.READY
        assert state.error.kind is ErrorKind.FILE_NOT_FOUND
        assert state.rows == rows
        assert state.file_path == orders_csv
        assert state.pagination_enabled
        assert opened.session.session_id == 1

    def test_open_resets_sort_and_page_but_keeps_size(self, opened, settle, small_csv):
        opened.set_page_size(50)
        settle()
        opened.set_sort(0, SortDirection.DESCENDING)
        settle()

        opened.open_file(small_csv)
        settle()

        state = opened.state
        assert state.page_number == 1
        assert state.page_size == 50
        assert state.sort_column_index is None
        assert state.sort_direction is SortDirection.NONE
        assert state.record_count == 3

    def test_new_session_drops_old_relation(self, opened, gateway, settle, small_csv):
        old_relation = opened.session.relation_name

        opened.open_file(small_csv)
        settle()

        assert opened.session.session_id == 2
        assert not relation_exists(gateway.conn, old_relation)
        assert relation_exists(gateway.conn, opened.session.relation_name)

    def test_empty_file(self, controller, settle, empty_parquet):
        controller.open_file(empty_parquet)
        settle()

        state = controller.state
        assert state.phase is ControllerPhase.READY
        assert state.rows == ()
        assert state.record_count == 0
        assert state.max_page == 1
        assert state.row_bounds == (0, 0)
        assert len(state.columns) == 2
        assert not controller.next_page()
        assert not controller.last_page()


class TestPaging:
    """Page navigation and boundary no-ops."""

    def test_next_page(self, opened, settle):
        assert opened.next_page()
        assert opened.state.phase is ControllerPhase.REFRESHING
        # Old rows stay visible while the request is in flight
        assert opened.state.rows[0][0] == "1"

        settle()

        assert opened.state.page_number == 2
        assert opened.state.rows[0][0] == "21"
        assert opened.state.row_bounds == (21, 40)

    def test_prev_page_at_start_is_a_noop(self, opened, gateway):
        submitted = gateway.submitted

        assert not opened.prev_page()
        assert not opened.first_page()
        assert gateway.submitted == submitted

    def test_last_page_then_next_is_a_noop(self, opened, gateway, settle):
        assert opened.last_page()
        settle()

        assert opened.state.page_number == 13
        assert len(opened.state.rows) == 10
        assert opened.state.rows[-1][0] == "250"

        submitted = gateway.submitted
        assert not opened.next_page()
        assert not opened.last_page()
        assert gateway.submitted == submitted

    def test_goto_page_clamps(self, opened, settle):
        assert opened.goto_page(99)
        settle()
        assert opened.state.page_number == 13

        assert not opened.goto_page(500)

        assert opened.goto_page(-4)
        settle()
        assert opened.state.page_number == 1

    def test_intents_rejected_while_loading(self, opened, settle):
        accepted = [opened.next_page() for _ in range(5)]
        settle()

        assert accepted == [True, False, False, False, False]
        assert opened.state.page_number == 2

    def test_intents_rejected_without_session(self, controller, gateway):
        assert not controller.next_page()
        assert not controller.goto_page(2)
        assert not controller.set_page_size(50)
        assert not controller.set_sort(0, SortDirection.ASCENDING)
        assert not controller.refresh()
        assert gateway.submitted == 0

    def test_refresh_keeps_page(self, opened, settle):
        opened.goto_page(4)
        settle()

        assert opened.refresh()
        settle()

        assert opened.state.page_number == 4
        assert opened.state.rows[0][0] == "61"


class TestPageSize:
    """Page size changes keep the first visible row on screen."""

    def test_size_change_keeps_first_row(self, opened, settle):
        opened.set_page_size(100)
        settle()
        opened.goto_page(2)
        settle()
        assert opened.state.row_bounds == (101, 200)

        assert opened.set_page_size(50)
        settle()

        state = opened.state
        assert state.page_number == 3
        assert state.page_size == 50
        assert state.max_page == 5
        assert state.rows[0][0] == "101"
        assert state.rows[-1][0] == "150"

    def test_size_not_allowed(self, opened, gateway):
        submitted = gateway.submitted

        assert not opened.set_page_size(30)
        assert not opened.set_page_size(0)
        assert gateway.submitted == submitted

    def test_same_size_is_a_noop(self, opened):
        assert not opened.set_page_size(20)

    def test_pending_size_is_not_shown_until_committed(self, opened):
        opened.set_page_size(50)

        assert opened.state.page_size == 20
        assert opened.pending.page_size == 50


class TestSorting:
    """Sorting by column."""

    def test_sort_resets_to_first_page(self, opened, settle):
        opened.goto_page(3)
        settle()

        assert opened.set_sort(0, SortDirection.DESCENDING)
        settle()

        state = opened.state
        assert state.page_number == 1
        assert state.sort_column_index == 0
        assert state.sort_direction is SortDirection.DESCENDING
        assert state.rows[0][0] == "250"

    def test_nulls_first_when_descending(self, opened, settle):
        opened.set_sort(2, SortDirection.DESCENDING)
        settle()

        assert all(row[2] == "NULL" for row in opened.state.rows[:20])

    def test_toggle_cycles(self, opened, settle):
        opened.toggle_sort(1)
        settle()
        assert opened.state.sort_direction is SortDirection.ASCENDING

        opened.toggle_sort(1)
        settle()
        assert opened.state.sort_direction is SortDirection.DESCENDING

        opened.toggle_sort(1)
        settle()
        assert opened.state.sort_direction is SortDirection.NONE
        assert opened.state.sort_column_index is None

    def test_toggle_other_column_starts_ascending(self, opened, settle):
        opened.set_sort(0, SortDirection.DESCENDING)
        settle()

        opened.toggle_sort(3)
        settle()

        assert opened.state.sort_column_index == 3
        assert opened.state.sort_direction is SortDirection.ASCENDING

    @pytest.mark.parametrize("index", [-1, 4, None])
    def test_column_out_of_range(self, opened, index):
        assert not opened.set_sort(index, SortDirection.ASCENDING)

    def test_same_sort_is_a_noop(self, opened):
        assert not opened.set_sort(None, SortDirection.NONE)


class TestStaleCompletions:
    """Only the newest request may change the view."""

    def test_open_during_refresh_discards_page(self, opened, gateway, small_csv):
        opened.next_page()
        opened.open_file(small_csv)
        assert opened.state.phase is ControllerPhase.LOADING

        # The page request finishes first and must be ignored
        gateway.run(0)
        assert opened.process_completions() == 0
        assert opened.state.page_number == 1
        assert opened.state.rows[0][0] == "1"
        assert opened.state.loading

        gateway.run(0)
        assert opened.process_completions() == 1
        assert opened.state.record_count == 3
        assert opened.state.file_path == small_csv

    def test_page_of_old_session_after_new_load(self, opened, gateway, settle, small_csv):
        opened.next_page()
        opened.open_file(small_csv)

        # The load finishes before the old page request
        gateway.run(1)
        assert opened.process_completions() == 1
        gateway.run(0)
        assert opened.process_completions() == 0

        settle()
        assert opened.state.record_count == 3
        assert opened.state.rows[0] == ("ada", "3")

    def test_stale_load_releases_its_relation(
        self, controller, gateway, settle, orders_csv, small_csv
    ):
        controller.open_file(orders_csv)
        controller.open_file(small_csv)

        gateway.run(0)
        assert controller.process_completions() == 0
        settle()

        assert controller.state.file_path == small_csv
        names = [
            row[0]
            for row in gateway.conn.execute(
                "SELECT table_name FROM information_schema.tables"
            ).fetchall()
        ]
        assert names == [controller.session.relation_name]

    def test_failed_stale_request_sets_no_error(self, opened, gateway, small_csv):
        opened.next_page()
        opened.open_file(small_csv)

        gateway.fail(0, ViewerError(kind=ErrorKind.ENGINE, message="boom"))
        opened.process_completions()

        assert opened.state.error is None


class TestFailures:
    """Failed requests keep the rows already on screen."""

    def test_page_failure_keeps_rows(self, opened, gateway):
        rows = opened.state.rows

        opened.next_page()
        gateway.fail(0, ViewerError(kind=ErrorKind.TIMEOUT, message="Query timed out"))
        opened.process_completions()

        state = opened.state
        assert state.phase is ControllerPhase.READY
        assert state.error.kind is ErrorKind.TIMEOUT
        assert state.rows == rows
        assert state.page_number == 1
        assert state.record_count == 250
        assert not state.loading
        assert state.pagination_enabled

    def test_dismiss_error(self, opened, gateway):
        opened.next_page()
        gateway.fail(0, ViewerError(kind=ErrorKind.ENGINE, message="boom"))
        opened.process_completions()

        assert opened.dismiss_error()
        assert opened.state.error is None
        assert not opened.dismiss_error()

    def test_success_clears_error(self, opened, gateway, settle):
        opened.next_page()
        gateway.fail(0, ViewerError(kind=ErrorKind.ENGINE, message="boom"))
        opened.process_completions()

        opened.next_page()
        settle()

        assert opened.state.error is None
        assert opened.state.page_number == 2

    def test_crashed_job_becomes_internal_error(self, opened, gateway):
        opened.next_page()
        gateway.crash(0, ValueError("unexpected"))
        opened.process_completions()

        assert opened.state.error.kind is ErrorKind.INTERNAL
        assert not opened.state.loading

    def test_gateway_unavailable(self, gateway, settings, orders_csv):
        def refuse(job):
            raise RuntimeError("ConnectionManager not initialized")

        gateway.submit = refuse
        controller = ViewerController(gateway, settings)

        assert controller.open_file(orders_csv)
        controller.process_completions()

        assert controller.state.error.kind is ErrorKind.CONNECTION
        assert controller.state.phase is ControllerPhase.IDLE


class TestObservers:
    """Snapshots are published to subscribers."""

    def test_subscribe_and_unsubscribe(self, controller, settle, orders_csv):
        seen = []
        unsubscribe = controller.subscribe(seen.append)

        controller.open_file(orders_csv)
        settle()

        assert [s.phase for s in seen] == [ControllerPhase.LOADING, ControllerPhase.READY]
        assert seen[-1] is controller.state

        unsubscribe()
        controller.next_page()
        assert len(seen) == 2

    def test_wakeup_called_per_completion(self, gateway, settings, orders_csv):
        calls = []
        controller = ViewerController(gateway, settings, wakeup=lambda: calls.append(1))

        controller.open_file(orders_csv)
        gateway.run(0)

        assert calls == [1]

    def test_pagination_enabled_tracks_loading(
        self, controller, gateway, settle, tmp_path, orders_csv, small_csv
    ):
        def check():
            state = controller.state
            assert state.pagination_enabled == (not state.loading)

        check()
        steps = [
            lambda: controller.open_file(tmp_path / "missing.csv"),
            lambda: controller.open_file(orders_csv),
            controller.next_page,
            lambda: controller.set_page_size(50),
            lambda: controller.set_sort(1, SortDirection.ASCENDING),
            controller.last_page,
            lambda: controller.open_file(tmp_path / "missing.csv"),
            lambda: controller.open_file(small_csv),
        ]
        for step in steps:
            assert step()
            check()
            settle()
            check()

        assert controller.set_sort(0, SortDirection.DESCENDING)
        check()
        gateway.fail(0, ViewerError(kind=ErrorKind.ENGINE, message="Query failed"))
        controller.process_completions()
        check()


class TestDispatch:
    """Typed intents route to the intent methods."""

    def test_dispatch(self, controller, settle, orders_csv):
        assert controller.dispatch(OpenFile(orders_csv))
        settle()
        assert controller.dispatch(SetPageSize(50))
        settle()
        assert controller.dispatch(GotoPage(2))
        settle()
        assert controller.dispatch(SetSort(0, SortDirection.DESCENDING))
        settle()
        assert controller.dispatch(ToggleSort(0))
        settle()
        assert controller.dispatch(NextPage())
        settle()

        state = controller.state
        assert state.page_size == 50
        assert state.page_number == 2
        assert state.sort_direction is SortDirection.NONE

    def test_unknown_intent(self, controller):
        with pytest.raises(TypeError):
            controller.dispatch(object())


class TestClose:
    """Closing the controller."""

    def test_close_discards_pending_work(self, opened, gateway):
        opened.next_page()
        opened.close()

        gateway.run(0)
        assert opened.process_completions() == 0
        assert gateway.closed
        assert not opened.open_file(Path("other.csv"))
        assert not opened.refresh()
