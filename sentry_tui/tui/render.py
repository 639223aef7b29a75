"""Render engine: ViewModel to terminal cell buffer.

``render`` is pure. It lays out the whole screen into a fresh CellBuffer,
diffs it cell by cell against the previously drawn buffer and returns only
the writes needed to bring the terminal up to date. Widths are measured in
terminal cells (via rich.cells) so wide glyphs keep borders and columns
aligned: a wide glyph occupies its lead cell plus one continuation cell.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional

from rich.cells import cell_len, get_character_cell_size, set_cell_size
from rich.color import ColorSystem
from rich.style import Style

from ..models import Issue, format_timestamp
from .view_model import (
    DashboardState,
    IssueDetailState,
    IssueListState,
    OrgListState,
    ViewModel,
    describe_error,
    detail_lines,
)

MIN_WIDTH = 40
MIN_HEIGHT = 8

ELLIPSIS = "…"
CONTINUATION = ""  # Second cell of a wide glyph

# ANSI control sequences
CLEAR_SCREEN = "\x1b[2J"

NULL_STYLE = Style()
TITLE_STYLE = Style(bold=True, color="cyan")
BORDER_STYLE = Style(color="blue")
HEADER_STYLE = Style(bold=True, color="yellow")
SELECTED_STYLE = Style(reverse=True)
NEW_STYLE = Style(bold=True, color="black", bgcolor="green")
ERROR_STYLE = Style(bold=True, color="red")
DIM_STYLE = Style(dim=True)
STATUS_STYLE = Style(color="white", bgcolor="blue")
STATUS_ERROR_STYLE = Style(bold=True, color="white", bgcolor="red")
PROMPT_STYLE = Style(bold=True, color="green")

LEVEL_STYLES = {
    "fatal": Style(bold=True, color="red"),
    "error": Style(color="red"),
    "warning": Style(color="yellow"),
    "info": Style(color="blue"),
    "debug": DIM_STYLE,
}


class RenderError(Exception):
    """Base exception for rendering failures."""

    pass


class TerminalTooSmallError(RenderError):
    """Raised by the layout when the terminal is below the minimum size."""

    def __init__(self, width: int, height: int):
        super().__init__(
            f"Terminal too small ({width}x{height}, need {MIN_WIDTH}x{MIN_HEIGHT})"
        )
        self.width = width
        self.height = height


class Cell(NamedTuple):
    """One terminal cell."""

    char: str
    style: Style = NULL_STYLE


BLANK = Cell(" ", NULL_STYLE)


def _clean(text: str) -> str:
    # Control characters would move the terminal cursor behind our back
    return "".join(
        " " if ch == "\t" else ch for ch in text if ch == "\t" or ch.isprintable()
    )


def fit(text: str, width: int) -> str:
    """Pad or truncate text to exactly ``width`` cells, marking truncation."""
    if width <= 0:
        return ""
    text = _clean(text)
    if cell_len(text) > width:
        return set_cell_size(text, width - 1) + ELLIPSIS
    return set_cell_size(text, width)


class CellBuffer:
    """A width x height grid of cells."""

    def __init__(self, width: int, height: int):
        self.width = max(width, 0)
        self.height = max(height, 0)
        self.rows: list[list[Cell]] = [[BLANK] * self.width for _ in range(self.height)]

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellBuffer):
            return NotImplemented
        return self.rows == other.rows

    def _set(self, x: int, y: int, cell: Cell) -> None:
        row = self.rows[y]
        old = row[x]
        # Never leave half of a wide glyph behind
        if old.char == CONTINUATION and x > 0 and cell.char != CONTINUATION:
            row[x - 1] = Cell(" ", row[x - 1].style)
        if x + 1 < self.width and row[x + 1].char == CONTINUATION:
            row[x + 1] = Cell(" ", row[x + 1].style)
        row[x] = cell

    def put(
        self,
        x: int,
        y: int,
        text: str,
        style: Style = NULL_STYLE,
        max_width: Optional[int] = None,
    ) -> int:
        """
        Write text starting at (x, y), clipped to the buffer and max_width.

        Returns:
            Number of cells written
        """
        if not 0 <= y < self.height or x >= self.width:
            return 0
        limit = self.width if max_width is None else min(self.width, x + max_width)
        col = x
        for ch in _clean(text):
            size = get_character_cell_size(ch)
            if size == 0:
                continue
            if col + size > limit:
                break
            if col >= 0:
                self._set(col, y, Cell(ch, style))
                if size == 2:
                    self._set(col + 1, y, Cell(CONTINUATION, style))
            col += size
        return col - x

    def fill(self, x: int, y: int, width: int, style: Style = NULL_STYLE, char: str = " ") -> None:
        """Fill part of a row with one character."""
        for col in range(max(x, 0), min(x + width, self.width)):
            if 0 <= y < self.height:
                self._set(col, y, Cell(char, style))

    def draw_box(
        self,
        x: int,
        y: int,
        width: int,
        height: int,
        style: Style = BORDER_STYLE,
        title: str = "",
    ) -> None:
        """Draw a single-line box, optionally with a title in the top border."""
        if width < 2 or height < 2:
            return
        right = x + width - 1
        bottom = y + height - 1
        self.fill(x + 1, y, width - 2, style, "─")
        self.fill(x + 1, bottom, width - 2, style, "─")
        for row in range(y + 1, bottom):
            self.put(x, row, "│", style)
            self.put(right, row, "│", style)
        self.put(x, y, "┌", style)
        self.put(right, y, "┐", style)
        self.put(x, bottom, "└", style)
        self.put(right, bottom, "┘", style)
        if title and width > 6:
            self.put(x + 2, y, f" {title} ", TITLE_STYLE, max_width=width - 4)

    def row_text(self, y: int) -> str:
        """Plain text of one row (for inspection)."""
        return "".join(cell.char for cell in self.rows[y])

    def text(self) -> str:
        return "\n".join(self.row_text(y) for y in range(self.height))


@dataclass(frozen=True)
class TerminalWrite:
    """Move the cursor to (x, y) and write styled text."""

    x: int
    y: int
    text: str
    style: Style = NULL_STYLE


@dataclass
class Frame:
    """Result of a render pass."""

    buffer: CellBuffer
    writes: list[TerminalWrite]
    clear: bool = False


# Layout geometry shared with the screen handlers


def list_viewport_height(height: int) -> int:
    """Rows available for list items: box borders, column header, status bar."""
    return max(height - 4, 1)


def dashboard_viewport_height(height: int) -> int:
    """Rows available on the dashboard: list rows minus the summary line."""
    return max(height - 5, 1)


def detail_viewport_height(height: int) -> int:
    """Rows available for the detail body: box borders and status bar."""
    return max(height - 3, 1)


# Diffing


def diff_buffers(previous: CellBuffer, current: CellBuffer) -> list[TerminalWrite]:
    """
    Minimal writes turning ``previous`` into ``current``.

    Adjacent changed cells with the same style are merged into one write.
    A run touching either half of a wide glyph always rewrites the whole
    glyph.
    """
    writes: list[TerminalWrite] = []
    for y in range(current.height):
        row = current.rows[y]
        old_row = previous.rows[y]
        x = 0
        while x < current.width:
            if row[x] == old_row[x]:
                x += 1
                continue

            start = x
            if row[start].char == CONTINUATION and start > 0:
                start -= 1
            style = row[start].style
            chars = [row[start].char]
            end = start + 1
            while end < current.width and row[end].style == style and (
                row[end] != old_row[end] or row[end].char == CONTINUATION
            ):
                chars.append(row[end].char)
                end += 1

            writes.append(TerminalWrite(start, y, "".join(chars), style))
            x = end
    return writes


def render(
    view_model: ViewModel,
    previous: Optional[CellBuffer],
    size: tuple[int, int],
) -> Frame:
    """
    Render the view model.

    Args:
        view_model: Current UI state
        previous: Buffer currently on the terminal (None forces a full redraw)
        size: Terminal (width, height)

    Returns:
        Frame with the new buffer and the writes to apply
    """
    width, height = size
    buffer = CellBuffer(width, height)
    try:
        draw_screen(buffer, view_model)
    except TerminalTooSmallError as e:
        buffer = CellBuffer(width, height)
        buffer.put(0, 0, fit(str(e), width), ERROR_STYLE)

    if previous is None or previous.size != buffer.size:
        return Frame(buffer, diff_buffers(CellBuffer(width, height), buffer), clear=True)
    return Frame(buffer, diff_buffers(previous, buffer))


def encode_frame(frame: Frame, color_system: ColorSystem = ColorSystem.STANDARD) -> str:
    """Turn a frame into the escape sequences to send to the terminal."""
    parts = [CLEAR_SCREEN] if frame.clear else []
    for write in frame.writes:
        parts.append(f"\x1b[{write.y + 1};{write.x + 1}H")
        parts.append(write.style.render(write.text, color_system=color_system))
    return "".join(parts)


# Screen layouts


def draw_screen(buffer: CellBuffer, view_model: ViewModel) -> None:
    """Lay out the active screen into the buffer."""
    if buffer.width < MIN_WIDTH or buffer.height < MIN_HEIGHT:
        raise TerminalTooSmallError(buffer.width, buffer.height)

    screen = view_model.screen
    if isinstance(screen, OrgListState):
        _draw_org_list(buffer, view_model)
    elif isinstance(screen, IssueListState):
        _draw_issue_list(buffer, view_model, screen)
    elif isinstance(screen, IssueDetailState):
        _draw_issue_detail(buffer, view_model, screen)
    elif isinstance(screen, DashboardState):
        _draw_dashboard(buffer, view_model, screen)


def _columns(
    inner_width: int, spec: list[tuple[str, int]], flex: str
) -> list[tuple[str, int]]:
    """
    Resolve column widths.

    Fixed columns keep their width; the ``flex`` column takes what is left.
    Trailing fixed columns are dropped until the flex column gets at least
    ten cells.
    """
    columns = list(spec)
    while True:
        fixed = sum(w for name, w in columns if name != flex)
        gaps = len(columns) - 1
        remaining = inner_width - fixed - gaps
        if remaining >= 10 or len(columns) <= 2:
            break
        columns.pop()
    return [(name, max(remaining, 1) if name == flex else w) for name, w in columns]


def _draw_row(
    buffer: CellBuffer,
    y: int,
    columns: list[tuple[str, int]],
    values: dict[str, str],
    style: Style,
    styles: Optional[dict[str, Style]] = None,
) -> None:
    x = 1
    buffer.fill(1, y, buffer.width - 2, style)
    for name, width in columns:
        cell_style = style
        if styles and name in styles and style == NULL_STYLE:
            cell_style = styles[name]
        buffer.put(x, y, fit(values.get(name, ""), width), cell_style)
        x += width + 1


def _draw_chrome(buffer: CellBuffer, title: str) -> None:
    buffer.draw_box(0, 0, buffer.width, buffer.height - 1, title=title)


def _draw_status(
    buffer: CellBuffer,
    view_model: ViewModel,
    hints: str,
    org: Optional[str] = None,
) -> None:
    y = buffer.height - 1
    error = view_model.last_error
    if error is not None:
        right = describe_error(error, org)
        style = STATUS_ERROR_STYLE
    elif view_model.loading:
        right = "Refreshing..."
        style = STATUS_STYLE
    elif view_model.status_message:
        right = view_model.status_message
        style = STATUS_STYLE
    elif view_model.last_refresh is not None and not isinstance(view_model.screen, OrgListState):
        right = f"Updated {view_model.last_refresh.strftime('%H:%M:%S')}"
        style = STATUS_STYLE
    else:
        right = ""
        style = STATUS_STYLE

    buffer.fill(0, y, buffer.width, STATUS_STYLE)
    right_width = min(cell_len(right), buffer.width // 2 + buffer.width // 4)
    left_width = buffer.width - right_width - 1
    buffer.put(0, y, fit(f" {hints}", left_width), STATUS_STYLE)
    if right_width:
        buffer.put(buffer.width - right_width, y, fit(right, right_width), style)


def _draw_org_list(buffer: CellBuffer, view_model: ViewModel) -> None:
    _draw_chrome(buffer, "Organizations")
    inner = buffer.width - 2
    columns = _columns(inner, [("Name", 20), ("Slug", 20), ("Project", 16), ("Status", 17)], "Name")
    _draw_row(buffer, 1, columns, {name: name for name, _ in columns}, HEADER_STYLE)

    viewport = list_viewport_height(buffer.height)
    orgs = view_model.organizations
    if not orgs:
        buffer.put(2, 2, fit("No organizations configured. Press 'a' to add one.", inner - 2), DIM_STYLE)

    top = max(view_model.org_index - viewport + 1, 0)
    for row, org in enumerate(orgs[top:top + viewport]):
        index = top + row
        style = SELECTED_STYLE if index == view_model.org_index else NULL_STYLE
        _draw_row(
            buffer,
            2 + row,
            columns,
            {
                "Name": org.name,
                "Slug": org.slug,
                "Project": org.default_project or "-",
                "Status": "authenticated" if org.is_authenticated else "not authenticated",
            },
            style,
        )

    prompt = view_model.prompt
    if prompt is not None:
        y = buffer.height - 4
        buffer.fill(1, y - 1, inner, NULL_STYLE)
        buffer.fill(1, y, inner, NULL_STYLE)
        label = "Add organization"
        done = ", ".join(f"{k}={v}" for k, v in prompt.values.items())
        buffer.put(2, y - 1, fit(f"{label} {done}".rstrip(), inner - 2), HEADER_STYLE)
        buffer.put(2, y, fit(f"{prompt.current_field.title()}: {prompt.buffer}_", inner - 2), PROMPT_STYLE)
        hints = "enter next · esc cancel"
    else:
        hints = "↑/↓ select · enter open · a add · q quit"
    _draw_status(buffer, view_model, hints)


def _issue_values(issue: Issue) -> dict[str, str]:
    return {
        "ID": issue.short_id,
        "Level": issue.level,
        "Title": issue.title,
        "Status": issue.status,
        "Events": str(issue.count),
        "Users": str(issue.user_count),
        "Last Seen": format_timestamp(issue.last_seen),
    }


def _draw_issue_list(buffer: CellBuffer, view_model: ViewModel, screen: IssueListState) -> None:
    _draw_chrome(buffer, f"Issues · {screen.org}/{screen.project}")
    inner = buffer.width - 2
    columns = _columns(
        inner,
        [("ID", 14), ("Level", 7), ("Title", 0), ("Events", 7), ("Users", 6), ("Last Seen", 19)],
        "Title",
    )
    _draw_row(buffer, 1, columns, {name: name for name, _ in columns}, HEADER_STYLE)

    viewport = list_viewport_height(buffer.height)
    if not view_model.issues:
        message = "Loading..." if view_model.last_refresh is None else "No issues found."
        buffer.put(2, 2, fit(message, inner - 2), DIM_STYLE)

    top = view_model.scroll_offset
    for row, issue in enumerate(view_model.issues[top:top + viewport]):
        index = top + row
        style = SELECTED_STYLE if index == view_model.selected_index else NULL_STYLE
        _draw_row(
            buffer,
            2 + row,
            columns,
            _issue_values(issue),
            style,
            {"Level": LEVEL_STYLES.get(issue.level, NULL_STYLE)},
        )

    _draw_status(
        buffer,
        view_model,
        "↑/↓ select · enter view · r refresh · m monitor · esc back · q quit",
        screen.org,
    )


def _draw_issue_detail(buffer: CellBuffer, view_model: ViewModel, screen: IssueDetailState) -> None:
    _draw_chrome(buffer, "Issue Details")
    inner = buffer.width - 2
    viewport = detail_viewport_height(buffer.height)
    lines = detail_lines(view_model)
    for row, line in enumerate(lines[view_model.detail_scroll:view_model.detail_scroll + viewport]):
        buffer.put(2, 1 + row, fit(line, inner - 2))

    if len(lines) > viewport:
        shown = min(view_model.detail_scroll + viewport, len(lines))
        position = f" {shown}/{len(lines)} "
        buffer.put(buffer.width - cell_len(position) - 2, buffer.height - 2, position, BORDER_STYLE)

    _draw_status(buffer, view_model, "↑/↓ scroll · PgUp/PgDn page · q back", screen.org)


def _draw_dashboard(buffer: CellBuffer, view_model: ViewModel, screen: DashboardState) -> None:
    _draw_chrome(buffer, f"Issue Monitor · {screen.org}/{screen.project}")
    inner = buffer.width - 2

    ranked = sorted(view_model.issues, key=lambda issue: issue.count, reverse=True)
    summary = (
        f"{len(view_model.issues)} unresolved · refreshing every "
        f"{view_model.monitor_interval:g}s"
    )
    if view_model.new_issue_ids:
        summary += f" · {len(view_model.new_issue_ids)} new"
    buffer.put(2, 1, fit(summary, inner - 2), TITLE_STYLE)

    columns = _columns(
        inner,
        [("ID", 14), ("Title", 0), ("Status", 12), ("Events", 8), ("Users", 8)],
        "Title",
    )
    _draw_row(buffer, 2, columns, {name: name for name, _ in columns}, HEADER_STYLE)

    viewport = dashboard_viewport_height(buffer.height)
    for row, issue in enumerate(ranked[:min(view_model.dashboard_limit, viewport)]):
        style = NEW_STYLE if issue.id in view_model.new_issue_ids else NULL_STYLE
        _draw_row(buffer, 3 + row, columns, _issue_values(issue), style)

    _draw_status(buffer, view_model, "esc back · q quit", screen.org)
