"""Interactive runtime: the single event loop behind every screen.

The loop owns the ViewModel. Keys (from the input reader thread), fetch
completions (from worker threads) and ticks (synthesized from deadlines)
all arrive through one queue; waiting on that queue is the only place the
loop blocks.
"""

import dataclasses
import queue
import time
from datetime import datetime
from typing import Any, Callable, Optional

from rich.color import ColorSystem

from ..client import SentryClient
from ..client.exceptions import RateLimitedError
from ..config import Settings, get_settings
from ..models import Organization
from ..storage import Config, ConfigStore
from ..storage.exceptions import ConfigError, OrganizationNotFoundError
from ..utils.logging import get_logger, setup_logging
from ..vault import CryptoError, TokenSession
from .events import (
    Event,
    FetchCompleted,
    FetchKind,
    FetchRequest,
    KeyEvent,
    Keys,
    QuitEvent,
    TickEvent,
)
from .render import (
    CellBuffer,
    RenderError,
    detail_viewport_height,
    encode_frame,
    list_viewport_height,
    render,
)
from .screens import ScreenHandler, handler_for
from .terminal import InputReader, Terminal
from .view_model import (
    DashboardState,
    IssueDetailState,
    IssueListState,
    OrgListState,
    ScreenState,
    ShutdownState,
    ViewModel,
)
from .worker import FetchWorker

logger = get_logger(__name__)

# Longest the loop waits on the queue before re-checking deadlines and size
IDLE_TIMEOUT = 0.25

ClientFactory = Callable[[str], Any]


class SystemClock:
    """Wall and monotonic time."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now()


def resolve_initial_screen(config: Config, settings: Settings) -> ScreenState:
    """IssueList for the default organization if one is set, else OrgList."""
    org = config.get_default_org()
    if org is None:
        return OrgListState()
    return IssueListState(org.slug, org.default_project or settings.default_project)


class EventLoop:
    """
    Event loop for the terminal UI.

    Screen handlers mutate the ViewModel, call ``transition`` and
    ``request_fetch``; the loop merges completions, keeps tick deadlines
    and redraws only when the ViewModel revision or terminal size changed.
    """

    def __init__(
        self,
        config: Config,
        store: ConfigStore,
        settings: Optional[Settings] = None,
        session: Optional[TokenSession] = None,
        client_factory: Optional[ClientFactory] = None,
        terminal: Optional[Terminal] = None,
        clock: Optional[SystemClock] = None,
        worker: Optional[FetchWorker] = None,
        color_system: ColorSystem = ColorSystem.STANDARD,
    ):
        """
        Initialize the event loop.

        Args:
            config: Loaded configuration (organizations and credentials)
            store: Store used to persist organizations added from the UI
            settings: Runtime settings (default from environment)
            session: Token session (default opens credentials via the vault)
            client_factory: Builds a tracker client from a token
            terminal: Terminal to draw on and size from
            clock: Time source for ticks and refresh timestamps
            worker: Runs fetches off the loop thread
            color_system: Color system used when encoding frames
        """
        self.config = config
        self.store = store
        self.settings = settings or get_settings()
        self.session = session or TokenSession()
        self.client_factory = client_factory or self._default_client
        self.terminal = terminal or Terminal()
        self.clock = clock or SystemClock()
        self.worker = worker or FetchWorker(self.post)
        self.color_system = color_system

        self.view_model = ViewModel(
            monitor_interval=self.settings.monitor.monitor_interval,
            dashboard_limit=self.settings.monitor.dashboard_limit,
        )

        self._events: "queue.Queue[Event]" = queue.Queue()
        self._clients: dict[str, Any] = {}
        self._in_flight: dict[FetchKind, FetchRequest] = {}
        self._next_tick_at: Optional[float] = None

        self._buffer: Optional[CellBuffer] = None
        self._rendered_revision: Optional[int] = None
        self._rendered_size: Optional[tuple[int, int]] = None

    def _default_client(self, token: str) -> SentryClient:
        return SentryClient(token, config=self.settings.api)

    # Queue

    def post(self, event: Event) -> None:
        """Hand an event to the loop. Safe to call from any thread."""
        self._events.put(event)

    def next_event(self, timeout: float = IDLE_TIMEOUT) -> Optional[Event]:
        """
        Wait for the next event, synthesizing a tick if one is due.

        Returns:
            The event, or None if nothing arrived within ``timeout``
        """
        self.tick_if_due()
        if self._next_tick_at is not None:
            timeout = min(timeout, max(self._next_tick_at - self.clock.monotonic(), 0.0))
        try:
            return self._events.get(timeout=timeout)
        except queue.Empty:
            return None

    def process_pending(self) -> int:
        """Step through every queued event without waiting. Returns the count."""
        count = 0
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return count
            self.step(event)
            count += 1

    # Ticks

    def schedule_tick(self, delay: Optional[float]) -> None:
        """Fire the next tick ``delay`` seconds from now (None cancels it)."""
        if delay is None:
            self._next_tick_at = None
        else:
            self._next_tick_at = self.clock.monotonic() + delay

    @property
    def next_tick_at(self) -> Optional[float]:
        return self._next_tick_at

    def tick_if_due(self) -> bool:
        """Post a TickEvent if the deadline has passed. Returns True if it did."""
        if self._next_tick_at is None:
            return False
        now = self.clock.monotonic()
        if now < self._next_tick_at:
            return False

        # Cadence is measured from the start of this tick
        interval = self._handler().poll_interval(self)
        self._next_tick_at = now + interval if interval is not None else None
        self.post(TickEvent(now, self.view_model.generation))
        return True

    # Dispatch

    def _handler(self) -> ScreenHandler:
        return handler_for(self.view_model.screen)

    def step(self, event: Optional[Event]) -> None:
        """Handle one event (or none) and redraw if anything changed."""
        self._sync_size()
        if event is not None:
            self.dispatch(event)
        self.render_if_needed()

    def dispatch(self, event: Event) -> None:
        vm = self.view_model
        if isinstance(event, KeyEvent):
            if event.key == Keys.CTRL_C:
                self.quit()
            else:
                self._handler().on_key(self, vm.screen, event.key)
        elif isinstance(event, TickEvent):
            if event.generation == vm.generation:
                self._handler().on_tick(self, vm.screen)
        elif isinstance(event, FetchCompleted):
            self._complete(event)
        elif isinstance(event, QuitEvent):
            logger.info(f"Quit requested: {event.reason or 'no reason given'}")
            self.quit()

    def transition(self, screen: ScreenState) -> None:
        """
        Switch screens.

        In-flight fetches are abandoned and the tick is cancelled; the new
        screen's ``on_enter`` schedules its own.
        """
        logger.debug(f"Transition to {type(screen).__name__}")
        self._in_flight.clear()
        self._next_tick_at = None
        self.view_model.last_error = None
        self.view_model.transition(screen)
        self._handler().on_enter(self, screen)

    def quit(self) -> None:
        if not self.view_model.is_shutdown:
            self.transition(ShutdownState())

    # Fetching

    def request_fetch(self, kind: FetchKind) -> bool:
        """
        Start a background fetch for the current screen.

        A fetch of the same kind already in flight makes this a no-op.

        Returns:
            True if a fetch was started
        """
        vm = self.view_model
        screen = vm.screen
        if kind in self._in_flight:
            logger.debug(f"Fetch {kind.value} already in flight")
            return False
        if not isinstance(screen, (IssueListState, IssueDetailState, DashboardState)):
            return False

        client = self.client_for(screen.org)
        if client is None:
            return False

        request = FetchRequest(
            kind=kind,
            generation=vm.generation,
            org=screen.org,
            project=screen.project,
            issue_id=getattr(screen, "issue_id", None),
        )
        def call() -> Any:
            if request.kind == FetchKind.DETAIL:
                return client.get_issue(request.org, request.project, request.issue_id)
            return client.list_issues(request.org, request.project)

        self._in_flight[kind] = request
        vm.loading = True
        vm.touch()
        self.worker.submit(request, call)
        return True

    def is_in_flight(self, kind: FetchKind) -> bool:
        return kind in self._in_flight

    def _complete(self, event: FetchCompleted) -> None:
        vm = self.view_model
        request = event.request
        if request.generation != vm.generation or self._in_flight.get(request.kind) != request:
            logger.debug(f"Discarding stale {request.kind.value} result")
            return

        del self._in_flight[request.kind]
        vm.loading = bool(self._in_flight)

        if not event.ok:
            self._fail(event.error)
            return

        vm.last_error = None
        if request.kind == FetchKind.ISSUES:
            new_ids = vm.replace_issues(
                event.result, (request.org, request.project), self.clock.now()
            )
            vm.new_issue_ids = new_ids if isinstance(vm.screen, DashboardState) else set()
            if new_ids:
                logger.info(f"{len(new_ids)} new issue(s) in {request.org}/{request.project}")
        else:
            vm.detail = event.result
        vm.touch()

    def _fail(self, error: Exception) -> None:
        vm = self.view_model
        vm.last_error = error
        vm.touch()
        if isinstance(error, RateLimitedError) and self._next_tick_at is not None:
            backoff_until = self.clock.monotonic() + error.retry_after
            self._next_tick_at = max(self._next_tick_at, backoff_until)
            logger.warning(f"Rate limited; next refresh in {error.retry_after:.0f}s")

    # Organizations

    def client_for(self, org_slug: str) -> Optional[Any]:
        """Tracker client for an organization, opening its credential if needed."""
        if org_slug in self._clients:
            return self._clients[org_slug]
        org = self.config.find_org(org_slug)
        if org is None:
            self._set_error(OrganizationNotFoundError(org_slug))
            return None
        if not self.open_organization(org):
            return None
        return self._clients[org.slug]

    def open_organization(self, org: Organization) -> bool:
        """
        Open an organization's credential and build its client.

        Failures are shown on the status bar and leave the screen unchanged.
        """
        if org.slug in self._clients:
            return True
        try:
            token = self.session.token_for(org)
        except CryptoError as e:
            logger.warning(f"Cannot open organization {org.slug}: {e}")
            self._set_error(e)
            return False
        self._clients[org.slug] = self.client_factory(token)
        return True

    def add_organization(self, name: str, slug: str) -> bool:
        """Add an organization from the UI form and persist it."""
        vm = self.view_model
        org = Organization(name=name, slug=slug)
        try:
            self.config.add_org(org)
        except ConfigError as e:
            self._set_error(e)
            return False

        try:
            self.store.save(self.config)
        except ConfigError as e:
            self.config.remove_org(org.slug)
            self._set_error(e)
            return False

        vm.organizations = list(self.config.organizations)
        vm.org_index = vm.organizations.index(org)
        vm.last_error = None
        vm.status_message = f"Added {name}. Run 'sentry-tui login {slug} <token>' to authenticate."
        vm.touch()
        logger.info(f"Added organization {slug}")
        return True

    def _set_error(self, error: Exception) -> None:
        self.view_model.last_error = error
        self.view_model.touch()

    # Lifecycle

    def start(self, initial: Optional[ScreenState] = None) -> None:
        """Enter the initial screen."""
        vm = self.view_model
        vm.organizations = list(self.config.organizations)
        vm.terminal_size = self.terminal.size()
        screen = initial or resolve_initial_screen(self.config, self.settings)

        org_slug = getattr(screen, "org", None)
        if org_slug is None:
            self.transition(screen)
            return

        org = self.config.find_org(org_slug)
        if org is None:
            self.transition(OrgListState())
            self._set_error(OrganizationNotFoundError(org_slug))
            return

        vm.org_index = vm.organizations.index(org)
        if not self.open_organization(org):
            error = vm.last_error
            self.transition(OrgListState())
            self._set_error(error)
            return

        # Screens are keyed by slug even when started from a name
        if org.slug != org_slug:
            screen = dataclasses.replace(screen, org=org.slug)
        self.transition(screen)

    def run(self, initial: Optional[ScreenState] = None) -> None:
        """Run until the user quits. The terminal is restored on every exit path."""
        with self.terminal.raw_mode():
            reader = InputReader(self.terminal, self.post)
            reader.start()
            try:
                self.start(initial)
                self.render_if_needed()
                while not self.view_model.is_shutdown:
                    self.step(self.next_event())
            finally:
                reader.stop()
                self.close()

    def close(self) -> None:
        """Release clients and forget cached tokens."""
        for client in self._clients.values():
            close = getattr(client, "close", None)
            if close is not None:
                close()
        self._clients.clear()
        self.session.clear()

    # Rendering

    def _sync_size(self) -> None:
        size = self.terminal.size()
        vm = self.view_model
        if size != vm.terminal_size:
            vm.terminal_size = size
            vm.keep_selection_visible(list_viewport_height(size[1]))
            vm.scroll_detail(0, detail_viewport_height(size[1]))
            vm.touch()

    def render_if_needed(self) -> bool:
        """Draw a frame unless nothing visible changed. Returns True if drawn."""
        vm = self.view_model
        if vm.is_shutdown:
            return False
        size = vm.terminal_size
        if vm.revision == self._rendered_revision and size == self._rendered_size:
            return False

        frame = render(vm, self._buffer, size)
        self.terminal.write(encode_frame(frame, self.color_system))
        self._buffer = frame.buffer
        self._rendered_revision = vm.revision
        self._rendered_size = size

        # New-issue highlight lasts one frame
        vm.new_issue_ids = set()
        return True

    @property
    def buffer(self) -> Optional[CellBuffer]:
        """Buffer currently on the terminal."""
        return self._buffer


def run_tui(
    initial: Optional[ScreenState] = None,
    settings: Optional[Settings] = None,
) -> None:
    """
    Run the interactive UI.

    Logging goes to the log file only while the terminal is in raw mode.

    Raises:
        ConfigError: If the config file cannot be loaded
        RenderError: If stdin/stdout is not a terminal
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.tui_log_file, console_output=False)

    store = ConfigStore(settings.config_path)
    config = store.load()

    terminal = Terminal()
    if not terminal.is_interactive():
        raise RenderError("The interactive UI needs a terminal on stdin and stdout.")

    loop = EventLoop(config, store, settings=settings, terminal=terminal)
    loop.run(initial)
