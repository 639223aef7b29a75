"""Events consumed by the interactive event loop.

Everything the loop reacts to arrives as one of these, through one queue:
keys from the input reader thread, ticks from the loop's own timer, and
fetch completions from worker threads.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Keys:
    """Names for non-printable keys. Printable keys are their own character."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    PAGE_UP = "pageup"
    PAGE_DOWN = "pagedown"
    HOME = "home"
    END = "end"
    ENTER = "enter"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    TAB = "tab"
    CTRL_C = "ctrl+c"


class FetchKind(str, Enum):
    """What a background fetch retrieves."""

    ISSUES = "issues"
    DETAIL = "detail"


@dataclass(frozen=True)
class FetchRequest:
    """A tracker call issued on behalf of one screen generation."""

    kind: FetchKind
    generation: int
    org: str
    project: str
    issue_id: Optional[str] = None


@dataclass(frozen=True)
class KeyEvent:
    """A decoded key press."""

    key: str


@dataclass(frozen=True)
class TickEvent:
    """A poll timer firing for the screen generation that scheduled it."""

    at: float
    generation: int


@dataclass(frozen=True)
class FetchCompleted:
    """Result of a background fetch. Exactly one of result/error is meaningful."""

    request: FetchRequest
    result: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class QuitEvent:
    """Request to shut the loop down."""

    reason: str = ""


Event = KeyEvent | TickEvent | FetchCompleted | QuitEvent
