"""Error dialog - shows the controller's current error."""

from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Static

from duckview.core.models import ViewerError


class ErrorScreen(ModalScreen[None]):
    """Modal showing a ViewerError until the user dismisses it."""

    BINDINGS = [
        ("escape", "dismiss_error", "Close"),
        ("enter", "dismiss_error", "Close"),
    ]

    def __init__(self, error: ViewerError, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.error = error

    def compose(self) -> ComposeResult:
        """Create the dialog layout."""
        with Vertical(classes="dialog error-dialog"):
            yield Static(
                f"{self.error.category.value.title()} error", classes="dialog-title"
            )
            yield Static(self.error.message, id="error-message", markup=False)
            if self.error.path:
                yield Static(self.error.path, id="error-path", markup=False)
            if self.error.detail:
                yield Static(self.error.detail, id="error-detail", markup=False)
            with Horizontal(classes="dialog-buttons"):
                yield Button("OK", variant="error", id="ok")

    def on_mount(self) -> None:
        self.query_one("#ok", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(None)

    def action_dismiss_error(self) -> None:
        self.dismiss(None)
