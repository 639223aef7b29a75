"""Per-screen key and timer handling for the interactive runtime."""

from typing import TYPE_CHECKING, Optional

from .events import FetchKind, Keys
from .render import detail_viewport_height, list_viewport_height
from .view_model import (
    DashboardState,
    IssueDetailState,
    IssueListState,
    OrgListState,
    PromptState,
    ScreenState,
)

if TYPE_CHECKING:
    from .app import EventLoop


class ScreenHandler:
    """Base handler. Screens override only what they react to."""

    def poll_interval(self, app: "EventLoop") -> Optional[float]:
        """Seconds between ticks while this screen is active, None to not poll."""
        return None

    def on_enter(self, app: "EventLoop", screen: ScreenState) -> None:
        pass

    def on_key(self, app: "EventLoop", screen: ScreenState, key: str) -> None:
        pass

    def on_tick(self, app: "EventLoop", screen: ScreenState) -> None:
        pass


class OrgListHandler(ScreenHandler):
    """Organization picker with an inline add form."""

    def on_key(self, app: "EventLoop", screen: ScreenState, key: str) -> None:
        vm = app.view_model
        if vm.prompt is not None:
            self._on_prompt_key(app, key)
            return

        if key in (Keys.UP, "k"):
            vm.move_org_selection(-1)
        elif key in (Keys.DOWN, "j"):
            vm.move_org_selection(1)
        elif key == Keys.HOME:
            vm.move_org_selection(-len(vm.organizations))
        elif key == Keys.END:
            vm.move_org_selection(len(vm.organizations))
        elif key == Keys.ENTER:
            org = vm.selected_org
            if org is not None and app.open_organization(org):
                project = org.default_project or app.settings.default_project
                app.transition(IssueListState(org.slug, project))
        elif key == "a":
            vm.prompt = PromptState()
            vm.last_error = None
            vm.touch()
        elif key == "q":
            app.quit()

    def _on_prompt_key(self, app: "EventLoop", key: str) -> None:
        vm = app.view_model
        prompt = vm.prompt
        if key == Keys.ESCAPE:
            vm.prompt = None
        elif key == Keys.BACKSPACE:
            prompt.buffer = prompt.buffer[:-1]
        elif key == Keys.ENTER:
            if not prompt.buffer.strip():
                vm.status_message = f"{prompt.current_field.title()} cannot be empty"
            elif prompt.advance():
                vm.prompt = None
                app.add_organization(prompt.values["name"], prompt.values["slug"])
        elif len(key) == 1:
            prompt.buffer += key
        else:
            return
        vm.touch()


class IssueListHandler(ScreenHandler):
    """Issue list with background refresh."""

    def poll_interval(self, app: "EventLoop") -> Optional[float]:
        return app.settings.monitor.refresh_interval

    def on_enter(self, app: "EventLoop", screen: IssueListState) -> None:
        vm = app.view_model
        key = (screen.org, screen.project)
        if vm.snapshot_key != key:
            vm.reset_snapshot(key)
        if vm.last_refresh is None:
            app.request_fetch(FetchKind.ISSUES)
        app.schedule_tick(self.poll_interval(app))

    def on_key(self, app: "EventLoop", screen: IssueListState, key: str) -> None:
        vm = app.view_model
        viewport = list_viewport_height(vm.terminal_size[1])
        if key in (Keys.UP, "k"):
            vm.move_issue_selection(-1, viewport)
        elif key in (Keys.DOWN, "j"):
            vm.move_issue_selection(1, viewport)
        elif key == Keys.PAGE_UP:
            vm.move_issue_selection(-viewport, viewport)
        elif key == Keys.PAGE_DOWN:
            vm.move_issue_selection(viewport, viewport)
        elif key == Keys.HOME:
            vm.move_issue_selection(-len(vm.issues), viewport)
        elif key == Keys.END:
            vm.move_issue_selection(len(vm.issues), viewport)
        elif key == Keys.ENTER:
            issue = vm.selected_issue
            if issue is not None:
                app.transition(IssueDetailState(screen.org, screen.project, issue.id))
        elif key == "r":
            app.request_fetch(FetchKind.ISSUES)
        elif key == "m":
            app.transition(DashboardState(screen.org, screen.project))
        elif key == Keys.ESCAPE:
            app.transition(OrgListState())
        elif key == "q":
            app.quit()

    def on_tick(self, app: "EventLoop", screen: IssueListState) -> None:
        app.request_fetch(FetchKind.ISSUES)


class IssueDetailHandler(ScreenHandler):
    """Scrollable detail view. Fetched once on entry."""

    def on_enter(self, app: "EventLoop", screen: IssueDetailState) -> None:
        vm = app.view_model
        vm.detail = None
        vm.detail_scroll = 0
        app.request_fetch(FetchKind.DETAIL)

    def on_key(self, app: "EventLoop", screen: IssueDetailState, key: str) -> None:
        vm = app.view_model
        viewport = detail_viewport_height(vm.terminal_size[1])
        if key in (Keys.UP, "k"):
            vm.scroll_detail(-1, viewport)
        elif key in (Keys.DOWN, "j"):
            vm.scroll_detail(1, viewport)
        elif key == Keys.PAGE_UP:
            vm.scroll_detail(-viewport, viewport)
        elif key == Keys.PAGE_DOWN:
            vm.scroll_detail(viewport, viewport)
        elif key in ("q", Keys.ESCAPE):
            app.transition(IssueListState(screen.org, screen.project))


class DashboardHandler(ScreenHandler):
    """Live monitor: refetches on every tick and flags new issues."""

    def poll_interval(self, app: "EventLoop") -> Optional[float]:
        return app.settings.monitor.monitor_interval

    def on_enter(self, app: "EventLoop", screen: DashboardState) -> None:
        vm = app.view_model
        key = (screen.org, screen.project)
        if vm.snapshot_key != key:
            vm.reset_snapshot(key)
        app.schedule_tick(0)

    def on_key(self, app: "EventLoop", screen: DashboardState, key: str) -> None:
        if key == "q":
            app.quit()
        elif key == Keys.ESCAPE:
            app.transition(IssueListState(screen.org, screen.project))

    def on_tick(self, app: "EventLoop", screen: DashboardState) -> None:
        app.request_fetch(FetchKind.ISSUES)


HANDLERS: dict[type, ScreenHandler] = {
    OrgListState: OrgListHandler(),
    IssueListState: IssueListHandler(),
    IssueDetailState: IssueDetailHandler(),
    DashboardState: DashboardHandler(),
}

_NULL_HANDLER = ScreenHandler()


def handler_for(screen: ScreenState) -> ScreenHandler:
    """Handler for a screen state. Shutdown gets one that ignores everything."""
    return HANDLERS.get(type(screen), _NULL_HANDLER)
