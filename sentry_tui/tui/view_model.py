"""In-memory state of what is on screen.

One ViewModel exists per running session. Only the event loop thread
mutates it; every visible change bumps ``revision`` through ``touch()`` so
the loop can skip redraws when nothing changed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ..client.exceptions import RateLimitedError, UnauthorizedError
from ..models import Issue, IssueDetail, Organization, format_timestamp


# Screen states


@dataclass(frozen=True)
class OrgListState:
    """Organization picker."""


@dataclass(frozen=True)
class IssueListState:
    """Issue list for one organization/project."""

    org: str
    project: str


@dataclass(frozen=True)
class IssueDetailState:
    """Detail view of a single issue."""

    org: str
    project: str
    issue_id: str


@dataclass(frozen=True)
class DashboardState:
    """Live monitoring dashboard for one organization/project."""

    org: str
    project: str


@dataclass(frozen=True)
class ShutdownState:
    """Terminal state; the loop exits once it is reached."""


ScreenState = Union[
    OrgListState, IssueListState, IssueDetailState, DashboardState, ShutdownState
]


@dataclass
class PromptState:
    """Inline form for adding an organization."""

    fields: tuple[str, ...] = ("name", "slug")
    values: dict[str, str] = field(default_factory=dict)
    index: int = 0
    buffer: str = ""

    @property
    def current_field(self) -> str:
        return self.fields[self.index]

    def advance(self) -> bool:
        """Commit the buffer to the current field.

        Returns:
            True once every field has a value
        """
        self.values[self.current_field] = self.buffer.strip()
        self.buffer = ""
        if self.index + 1 >= len(self.fields):
            return True
        self.index += 1
        return False


@dataclass
class ViewModel:
    """Single mutable snapshot of UI state."""

    screen: ScreenState = field(default_factory=OrgListState)
    organizations: list[Organization] = field(default_factory=list)
    org_index: int = 0

    # Issue list snapshot, replaced wholesale on refresh
    issues: tuple[Issue, ...] = ()
    selected_index: int = 0
    scroll_offset: int = 0
    snapshot_key: Optional[tuple[str, str]] = None
    last_refresh: Optional[datetime] = None
    # Generation whose fetch last filled the snapshot
    snapshot_generation: Optional[int] = None
    new_issue_ids: set[str] = field(default_factory=set)

    # Detail view
    detail: Optional[IssueDetail] = None
    detail_scroll: int = 0

    last_error: Optional[Exception] = None
    status_message: str = ""
    loading: bool = False
    prompt: Optional[PromptState] = None

    monitor_interval: float = 5.0
    dashboard_limit: int = 10
    terminal_size: tuple[int, int] = (80, 24)

    generation: int = 0
    revision: int = 0

    def touch(self) -> None:
        """Record a visible change."""
        self.revision += 1

    def transition(self, screen: ScreenState) -> None:
        """Switch screens. Bumps the generation so late results are discarded."""
        self.screen = screen
        self.generation += 1
        self.loading = False
        self.status_message = ""
        self.touch()

    @property
    def is_shutdown(self) -> bool:
        return isinstance(self.screen, ShutdownState)

    @property
    def selected_org(self) -> Optional[Organization]:
        if 0 <= self.org_index < len(self.organizations):
            return self.organizations[self.org_index]
        return None

    @property
    def selected_issue(self) -> Optional[Issue]:
        if 0 <= self.selected_index < len(self.issues):
            return self.issues[self.selected_index]
        return None

    def find_issue(self, issue_id: str) -> Optional[Issue]:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None

    def move_org_selection(self, delta: int) -> None:
        """Move the organization cursor, clamped to the list."""
        if not self.organizations:
            return
        index = min(max(self.org_index + delta, 0), len(self.organizations) - 1)
        if index != self.org_index:
            self.org_index = index
            self.touch()

    def move_issue_selection(self, delta: int, viewport: int) -> None:
        """Move the issue cursor, clamped, keeping it inside the viewport."""
        if not self.issues:
            return
        index = min(max(self.selected_index + delta, 0), len(self.issues) - 1)
        if index != self.selected_index:
            self.selected_index = index
            self._follow_selection(viewport)
            self.touch()

    def keep_selection_visible(self, viewport: int) -> None:
        """Scroll so the selected issue fits a (possibly smaller) viewport."""
        offset = self.scroll_offset
        self._follow_selection(viewport)
        if self.scroll_offset != offset:
            self.touch()

    def _follow_selection(self, viewport: int) -> None:
        viewport = max(viewport, 1)
        if self.selected_index < self.scroll_offset:
            self.scroll_offset = self.selected_index
        elif self.selected_index >= self.scroll_offset + viewport:
            self.scroll_offset = self.selected_index - viewport + 1

    def reset_snapshot(self, key: tuple[str, str]) -> None:
        """Start a fresh, empty snapshot for another organization/project."""
        self.issues = ()
        self.selected_index = 0
        self.scroll_offset = 0
        self.snapshot_key = key
        self.last_refresh = None
        self.snapshot_generation = None
        self.new_issue_ids = set()
        self.last_error = None
        self.touch()

    def replace_issues(
        self,
        issues: list[Issue],
        key: tuple[str, str],
        refreshed_at: datetime,
    ) -> set[str]:
        """
        Replace the issue snapshot.

        Returns:
            Ids present now but not in the previous snapshot. Empty on the
            first load of a snapshot, where everything would be "new".
            A snapshot taken on an earlier screen is not a baseline either.
        """
        had_snapshot = (
            self.snapshot_key == key
            and self.last_refresh is not None
            and self.snapshot_generation == self.generation
        )
        previous_ids = {issue.id for issue in self.issues}

        self.issues = tuple(issues)
        self.snapshot_key = key
        self.last_refresh = refreshed_at
        self.snapshot_generation = self.generation

        if self.issues:
            self.selected_index = min(self.selected_index, len(self.issues) - 1)
            self.scroll_offset = min(self.scroll_offset, self.selected_index)
        else:
            self.selected_index = 0
            self.scroll_offset = 0
        self.touch()

        if not had_snapshot:
            return set()
        return {issue.id for issue in self.issues} - previous_ids

    def scroll_detail(self, delta: int, viewport: int) -> None:
        """Scroll the detail body, clamped to its length."""
        lines = detail_lines(self)
        limit = max(len(lines) - max(viewport, 1), 0)
        offset = min(max(self.detail_scroll + delta, 0), limit)
        if offset != self.detail_scroll:
            self.detail_scroll = offset
            self.touch()


def describe_error(error: Exception, org: Optional[str] = None) -> str:
    """One-line message for the status bar."""
    if isinstance(error, UnauthorizedError):
        target = org or "<org>"
        return f"Token rejected. Run: sentry-tui login {target} <token>"
    if isinstance(error, RateLimitedError):
        return f"Rate limited, next refresh in {error.retry_after:.0f}s"
    return str(error) or type(error).__name__


def detail_lines(view_model: ViewModel) -> list[str]:
    """Body of the detail screen, one entry per terminal line."""
    screen = view_model.screen
    if not isinstance(screen, IssueDetailState):
        return []

    issue: Optional[Issue] = view_model.detail or view_model.find_issue(screen.issue_id)
    if issue is None:
        return [f"Issue {screen.issue_id}", "", "Loading..." if view_model.loading else "No data."]

    lines = [
        f"ID: {issue.short_id} ({issue.id})",
        f"Title: {issue.title}",
        f"Status: {issue.status}",
        f"Level: {issue.level}",
        f"Culprit: {issue.culprit or '-'}",
        f"First Seen: {format_timestamp(issue.first_seen)}",
        f"Last Seen: {format_timestamp(issue.last_seen)}",
        f"Events: {issue.count}",
        f"Users Affected: {issue.user_count}",
    ]

    detail = view_model.detail
    if detail is None:
        if view_model.loading:
            lines += ["", "Loading details..."]
        return lines

    if detail.platform:
        lines.append(f"Platform: {detail.platform}")
    if detail.permalink:
        lines.append(f"Permalink: {detail.permalink}")
    if detail.type or detail.value:
        lines += ["", "Exception:"]
        if detail.type:
            lines.append(f"  {detail.type}")
        for value_line in detail.value.splitlines():
            lines.append(f"  {value_line}")
    return lines
