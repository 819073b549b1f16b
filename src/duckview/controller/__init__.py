"""Controller: intents in, view state snapshots out."""

from duckview.controller.controller import ViewerController
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

__all__ = [
    "ViewerController",
    # State
    "Completion",
    "ControllerPhase",
    "Request",
    "RequestKind",
    "Session",
    "ViewState",
    # Intents
    "DismissError",
    "FirstPage",
    "GotoPage",
    "Intent",
    "LastPage",
    "NextPage",
    "OpenFile",
    "PrevPage",
    "Refresh",
    "SetPageSize",
    "SetSort",
    "ToggleSort",
]
