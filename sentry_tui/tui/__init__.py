"""Interactive terminal UI for sentry-tui.

Usage:
    from sentry_tui.tui import run_tui
    run_tui()
"""

from .app import EventLoop, SystemClock, resolve_initial_screen, run_tui
from .events import FetchCompleted, FetchKind, FetchRequest, KeyEvent, Keys, QuitEvent, TickEvent
from .render import (
    CellBuffer,
    Frame,
    RenderError,
    TerminalTooSmallError,
    TerminalWrite,
    encode_frame,
    render,
)
from .terminal import Terminal, decode_keys
from .view_model import (
    DashboardState,
    IssueDetailState,
    IssueListState,
    OrgListState,
    ShutdownState,
    ViewModel,
)

__all__ = [
    # Runtime
    "EventLoop",
    "SystemClock",
    "resolve_initial_screen",
    "run_tui",
    # Events
    "FetchCompleted",
    "FetchKind",
    "FetchRequest",
    "KeyEvent",
    "Keys",
    "QuitEvent",
    "TickEvent",
    # Rendering
    "CellBuffer",
    "Frame",
    "RenderError",
    "TerminalTooSmallError",
    "TerminalWrite",
    "encode_frame",
    "render",
    # Terminal
    "Terminal",
    "decode_keys",
    # State
    "DashboardState",
    "IssueDetailState",
    "IssueListState",
    "OrgListState",
    "ShutdownState",
    "ViewModel",
]
