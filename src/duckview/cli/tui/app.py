"""Main Textual application for the duckview TUI."""

from __future__ import annotations

from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Header, Select, Static

from duckview.controller import ControllerPhase, ViewerController, ViewState
from duckview.core import ConnectionConfig, ConnectionManager, Settings, SortDirection, get_settings
from duckview.core.logging import get_logger

logger = get_logger(__name__)

_SORT_ARROWS = {
    SortDirection.ASCENDING: "▲",
    SortDirection.DESCENDING: "▼",
}

_VIEW_ACTIONS = {"open_file", "refresh", "prev_page", "next_page", "first_page", "last_page"}


class CompletionsReady(Message):
    """Posted from the engine worker when a result is waiting to be applied."""


class DuckViewApp(App[None]):
    """Interactive viewer for one CSV or parquet file at a time.

    Layout:
    - File and status line
    - Table with the current page
    - Pagination bar: first/prev/next/last, page label, page size
    """

    CSS_PATH = "styles.tcss"
    TITLE = "DuckView"

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("o", "open_file", "Open", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("left_square_bracket", "prev_page", "Prev", key_display="[", show=True),
        Binding("right_square_bracket", "next_page", "Next", key_display="]", show=True),
        Binding("home", "first_page", "First", show=True, priority=True),
        Binding("end", "last_page", "Last", show=True, priority=True),
    ]

    def __init__(
        self,
        path: Path | None = None,
        page_size: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the app.

        Args:
            path: File to open on startup
            page_size: Initial rows per page
            settings: Application settings; defaults to get_settings()
        """
        super().__init__()
        settings = settings or get_settings()
        if page_size is not None:
            settings = settings.model_copy(update={"default_page_size": page_size})
        self.settings = settings
        self.initial_path = path
        self._manager: ConnectionManager | None = None
        self._controller: ViewerController | None = None
        self._shown: ViewState | None = None
        self._error_on_screen = False

    @property
    def controller(self) -> ViewerController:
        if self._controller is None:
            raise RuntimeError("Controller not started; the app is not mounted")
        return self._controller

    def compose(self) -> ComposeResult:
        """Create child widgets for the app."""
        yield Header()
        yield Static("", id="file-info")
        yield DataTable(id="rows-table", zebra_stripes=True)
        with Horizontal(id="pagination"):
            yield Button("« First", id="first-page")
            yield Button("‹ Prev", id="prev-page")
            yield Static("", id="page-label")
            yield Button("Next ›", id="next-page")
            yield Button("Last »", id="last-page")
            yield Select(
                [(f"{size} rows", size) for size in self.settings.page_sizes],
                value=self.settings.default_page_size,
                allow_blank=False,
                id="page-size",
            )
        yield Static("", id="status-line")
        yield Footer()

    def on_mount(self) -> None:
        """Start the engine and the controller, then open the initial file."""
        table = self.query_one("#rows-table", DataTable)
        table.header_height = 2
        table.cursor_type = "cell"

        self._manager = ConnectionManager(ConnectionConfig.from_settings(self.settings))
        try:
            self._manager.initialize()
        except RuntimeError as e:
            logger.error("engine_start_failed", error=str(e))
            self.exit(message=str(e))
            return

        self._controller = ViewerController(
            self._manager,
            self.settings,
            wakeup=lambda: self.post_message(CompletionsReady()),
        )
        self._controller.subscribe(self._show_state)
        self._show_state(self._controller.state)

        if self.initial_path is not None:
            self._controller.open_file(self.initial_path)

    def on_unmount(self) -> None:
        """Clean up resources when app closes."""
        if self._controller is not None:
            self._controller.close()
        elif self._manager is not None:
            self._manager.close()

    # ------------------------------------------------------------------
    # Engine results
    # ------------------------------------------------------------------

    def on_completions_ready(self, message: CompletionsReady) -> None:
        if self._controller is not None:
            self._controller.process_completions()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _show_state(self, state: ViewState) -> None:
        """Bring every widget in line with a new snapshot."""
        previous = self._shown
        self._shown = state

        table = self.query_one("#rows-table", DataTable)
        header_changed = previous is None or (
            previous.columns,
            previous.sort_column_index,
            previous.sort_direction,
        ) != (state.columns, state.sort_column_index, state.sort_direction)

        if header_changed:
            table.clear(columns=True)
            for index, column in enumerate(state.columns):
                table.add_column(self._header_label(state, index), key=f"c{index}")
            table.add_rows(state.rows)
        elif previous is None or previous.rows != state.rows:
            table.clear()
            table.add_rows(state.rows)

        table.loading = state.phase is ControllerPhase.LOADING

        self._render_pagination(state)
        self._render_status(state)

        if state.error is not None and not self._error_on_screen:
            from duckview.cli.tui.screens import ErrorScreen

            self._error_on_screen = True
            self.push_screen(ErrorScreen(state.error), callback=self._on_error_dismissed)

    def _header_label(self, state: ViewState, index: int) -> str:
        column = state.columns[index]
        if index == state.sort_column_index and state.sort_direction in _SORT_ARROWS:
            return f"{column.name} {_SORT_ARROWS[state.sort_direction]}\n({column.base_type})"
        return column.label

    def _render_pagination(self, state: ViewState) -> None:
        disabled = not state.pagination_enabled
        for button in self.query("#pagination Button").results(Button):
            button.disabled = disabled

        select = self.query_one("#page-size", Select)
        select.disabled = disabled
        if not state.loading and select.value != state.page_size:
            select.value = state.page_size

        label = self.query_one("#page-label", Static)
        if state.has_session:
            label.update(f"Page {state.page_number} of {state.max_page}")
        else:
            label.update("")

    def _render_status(self, state: ViewState) -> None:
        info = self.query_one("#file-info", Static)
        status = self.query_one("#status-line", Static)

        if state.file_path is None:
            info.update("No file open. Press o to open a CSV or parquet file.")
        else:
            info.update(f"{state.file_path} ({len(state.columns)} columns)")

        if state.phase is ControllerPhase.LOADING:
            status.update("Loading…")
            return
        if state.phase is ControllerPhase.REFRESHING:
            status.update("Querying…")
            return
        if not state.has_session:
            status.update("")
            return

        first, last = state.row_bounds
        parts = [f"{state.record_count:,} rows"]
        if last:
            parts.append(f"showing {first:,}-{last:,}")
        if state.duration is not None:
            parts.append(f"{state.duration * 1000:.0f} ms")
        status.update(" · ".join(parts))

    def _on_error_dismissed(self, _: None = None) -> None:
        self._error_on_screen = False
        self.controller.dismiss_error()

    # ------------------------------------------------------------------
    # Widget events
    # ------------------------------------------------------------------

    def on_button_pressed(self, event: Button.Pressed) -> None:
        actions = {
            "first-page": self.controller.first_page,
            "prev-page": self.controller.prev_page,
            "next-page": self.controller.next_page,
            "last-page": self.controller.last_page,
        }
        action = actions.get(event.button.id or "")
        if action is not None:
            action()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "page-size" or event.value is Select.BLANK:
            return
        if self._controller is not None and event.value != self._controller.state.page_size:
            self._controller.set_page_size(int(event.value))  # type: ignore[arg-type]

    def on_data_table_header_selected(self, event: DataTable.HeaderSelected) -> None:
        """Header click cycles the sort on that column."""
        self.controller.toggle_sort(event.column_index)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Leave keys to dialogs while one is open."""
        if isinstance(self.screen, ModalScreen) and action in _VIEW_ACTIONS:
            return False
        return True

    def action_open_file(self) -> None:
        from duckview.cli.tui.screens import OpenFileScreen

        current = self.controller.state.file_path
        self.push_screen(OpenFileScreen(current), callback=self._on_path_chosen)

    def _on_path_chosen(self, path: str | None) -> None:
        if path:
            self.controller.open_file(Path(path))

    def action_refresh(self) -> None:
        self.controller.refresh()

    def action_prev_page(self) -> None:
        self.controller.prev_page()

    def action_next_page(self) -> None:
        self.controller.next_page()

    def action_first_page(self) -> None:
        self.controller.first_page()

    def action_last_page(self) -> None:
        self.controller.last_page()
