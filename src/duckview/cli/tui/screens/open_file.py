"""Open-file dialog."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static


class OpenFileScreen(ModalScreen[str | None]):
    """Asks for the path of a CSV or parquet file.

    Dismisses with the entered path, or None when cancelled.
    """

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
    ]

    def __init__(self, initial_path: Path | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.initial_path = initial_path

    def compose(self) -> ComposeResult:
        """Create the dialog layout."""
        with Vertical(classes="dialog"):
            yield Static("Open file", classes="dialog-title")
            yield Input(
                value=str(self.initial_path) if self.initial_path else "",
                placeholder="path/to/data.csv or data.parquet",
                id="path-input",
            )
            with Horizontal(classes="dialog-buttons"):
                yield Button("Open", variant="primary", id="open")
                yield Button("Cancel", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#path-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._submit(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "open":
            self._submit(self.query_one("#path-input", Input).value)
        else:
            self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)

    def _submit(self, value: str) -> None:
        path = value.strip()
        if not path:
            self.notify("Enter a file path", severity="warning")
            return
        self.dismiss(path)
