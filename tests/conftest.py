"""Shared pytest fixtures for sentry-tui tests."""

import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import keyring
import pytest
from keyring.backend import KeyringBackend


class MemoryKeyring(KeyringBackend):
    """Keyring backend holding passwords in a dict."""

    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service, username):
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        self.passwords.pop((service, username), None)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.t = start
        self.epoch = datetime(2026, 1, 1, 12, 0, 0)

    def monotonic(self) -> float:
        return self.t

    def now(self) -> datetime:
        return self.epoch + timedelta(seconds=self.t)

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FakeTerminal:
    """Terminal stand-in recording everything written to it."""

    def __init__(self, width: int = 80, height: int = 24):
        self.width = width
        self.height = height
        self.writes: list[str] = []
        self.raw = False
        self.restored = False

    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def write(self, text: str) -> None:
        self.writes.append(text)

    def read(self, timeout: float) -> str:
        time.sleep(min(timeout, 0.01))
        return ""

    @contextmanager
    def raw_mode(self):
        self.raw = True
        try:
            yield self
        finally:
            self.raw = False
            self.restored = True


class DeferredWorker:
    """Worker that holds fetches until the test finishes them."""

    def __init__(self):
        self.pending = []

    def submit(self, request, call) -> None:
        self.pending.append((request, call))

    def finish(self, index: int = 0):
        """Run a pending call and return its FetchCompleted."""
        from sentry_tui.client import ApiError
        from sentry_tui.tui import FetchCompleted

        request, call = self.pending.pop(index)
        try:
            return FetchCompleted(request, result=call())
        except ApiError as e:
            return FetchCompleted(request, error=e)

    def complete(self, loop, index: int = 0) -> None:
        """Finish a pending call and post the result to the loop."""
        loop.post(self.finish(index))


class StubClient:
    """Tracker client serving canned issues."""

    def __init__(self, issues=None):
        self.issues = list(issues or [])
        self.details = {}
        self.projects: list[str] = []
        self.error: Optional[Exception] = None
        self.tokens: list[str] = []
        self.list_calls = 0
        self.detail_calls = 0
        self.closed = False

    def list_issues(self, org, project, cursor=None):
        self.list_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.issues)

    def get_issue(self, org, project, issue_id):
        from sentry_tui.models import IssueDetail

        self.detail_calls += 1
        if self.error is not None:
            raise self.error
        if issue_id in self.details:
            return self.details[issue_id]
        issue = next(i for i in self.issues if i.id == issue_id)
        return IssueDetail(**issue.__dict__)

    def list_projects(self, org):
        if self.error is not None:
            raise self.error
        return list(self.projects)

    def close(self):
        self.closed = True


def make_issue(number: int, count: int = 1, **kwargs):
    """Build an Issue numbered ``number``."""
    from sentry_tui.models import Issue

    fields = {
        "id": str(number),
        "short_id": f"WEB-{number}",
        "title": f"Error number {number}",
        "level": "error",
        "count": count,
        "user_count": 1,
        "last_seen": datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc),
    }
    fields.update(kwargs)
    return Issue(**fields)


def issue_api_payload(number: int, **kwargs) -> dict:
    """Issue object as the issues endpoint returns it."""
    payload = {
        "id": str(number),
        "shortId": f"WEB-{number}",
        "title": f"Error number {number}",
        "culprit": "app.views in index",
        "level": "error",
        "status": "unresolved",
        "count": str(number * 10),
        "userCount": number,
        "firstSeen": "2026-01-01T09:00:00Z",
        "lastSeen": "2026-01-01T10:00:00.123Z",
    }
    payload.update(kwargs)
    return payload


@pytest.fixture(autouse=True)
def memory_keyring():
    """Replace the OS secret store for every test."""
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture
def settings(tmp_path: Path):
    """Settings pointing at a temporary config file, installed globally."""
    from sentry_tui.config import Settings, configure

    settings = Settings(
        config_path=tmp_path / "config" / "config.json",
        cache_dir=tmp_path / "cache",
    )
    configure(settings)
    yield settings
    configure(None)


@pytest.fixture
def config_store(settings):
    """ConfigStore on the temporary config path."""
    from sentry_tui.storage import ConfigStore

    return ConfigStore(settings.config_path)


@pytest.fixture
def vault():
    """CredentialVault backed by the in-memory keyring."""
    from sentry_tui.vault import CredentialVault

    return CredentialVault()


@pytest.fixture
def logged_in_config(vault):
    """Config with one logged-in organization and one without a token."""
    from sentry_tui.models import Organization
    from sentry_tui.storage import Config

    config = Config()
    config.add_org(Organization(name="Acme", slug="acme", default_project="web"))
    config.add_org(Organization(name="Globex", slug="globex"))
    config.set_credential("acme", vault.seal("acme-token", "acme"))
    return config


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def terminal() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def worker() -> DeferredWorker:
    return DeferredWorker()


@pytest.fixture
def stub_client() -> StubClient:
    return StubClient([make_issue(n, count=n) for n in range(1, 6)])


@pytest.fixture
def stub_client_factory():
    """Builds further stub clients: stub_client_factory(issues)."""
    return StubClient


@pytest.fixture
def make_loop(settings, config_store, clock, terminal, worker, stub_client):
    """Factory for an EventLoop wired to fakes. Starts it unless told not to."""
    from sentry_tui.tui import EventLoop

    def factory(config, initial=None, start=True, client=None):
        client = client or stub_client

        def client_factory(token):
            client.tokens.append(token)
            return client

        loop = EventLoop(
            config,
            config_store,
            settings=settings,
            client_factory=client_factory,
            terminal=terminal,
            clock=clock,
            worker=worker,
        )
        if start:
            loop.start(initial)
            loop.render_if_needed()
        return loop

    return factory


@pytest.fixture
def issue_factory():
    """Builds Issue objects: issue_factory(number, count=..., **fields)."""
    return make_issue


@pytest.fixture
def payload_factory():
    """Builds issue API payloads: payload_factory(number, **fields)."""
    return issue_api_payload
