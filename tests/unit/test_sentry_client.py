"""Unit tests for the Sentry API client."""

import httpx
import pytest


def make_client(handler, **kwargs):
    from sentry_tui.client import SentryClient
    from sentry_tui.config import ApiConfig

    return SentryClient(
        "tok-123",
        config=ApiConfig(base_url="https://sentry.example.com/api/0"),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestListIssues:
    """Tests for the project issues endpoint."""

    def test_request_shape(self, payload_factory):
        """Test path, query parameters and bearer token."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json=[payload_factory(1), payload_factory(2)])

        with make_client(handler) as client:
            issues = client.list_issues("acme", "web")

        request = seen["request"]
        assert request.url.path == "/api/0/projects/acme/web/issues/"
        assert request.url.params["query"] == "is:unresolved"
        assert request.url.params["statsPeriod"] == "14d"
        assert request.url.params["sort"] == "date"
        assert request.headers["Authorization"] == "Bearer tok-123"
        assert [issue.short_id for issue in issues] == ["WEB-1", "WEB-2"]

    def test_fields_parsed(self, payload_factory):
        """Test string counts and timestamps are converted."""

        def handler(request):
            return httpx.Response(200, json=[payload_factory(3)])

        with make_client(handler) as client:
            issue = client.list_issues("acme", "web")[0]

        assert issue.id == "3"
        assert issue.count == 30
        assert issue.user_count == 3
        assert issue.culprit == "app.views in index"
        assert issue.last_seen.year == 2026
        assert issue.first_seen.hour == 9

    def test_cursor_forwarded(self):
        """Test the pagination cursor is sent when given."""
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(200, json=[])

        with make_client(handler) as client:
            client.list_issues("acme", "web", cursor="0:100:0")

        assert seen["params"]["cursor"] == "0:100:0"

    def test_unexpected_shape(self):
        """Test a non-list body raises ApiError."""
        from sentry_tui.client import ApiError

        def handler(request):
            return httpx.Response(200, json={"detail": "nope"})

        with make_client(handler) as client, pytest.raises(ApiError):
            client.list_issues("acme", "web")

    def test_invalid_json(self):
        """Test a body that is not JSON raises ApiError."""
        from sentry_tui.client import ApiError

        def handler(request):
            return httpx.Response(200, text="<html>")

        with make_client(handler) as client, pytest.raises(ApiError):
            client.list_issues("acme", "web")


class TestGetIssue:
    """Tests for the issue detail endpoint."""

    def test_detail_fields(self, payload_factory):
        """Test detail-only fields are parsed."""
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, json=payload_factory(
                7,
                permalink="https://sentry.example.com/issues/7/",
                platform="python",
                metadata={"type": "KeyError", "value": "'user_id'"},
                project={"slug": "web"},
            ))

        with make_client(handler) as client:
            detail = client.get_issue("acme", "web", "7")

        assert seen["path"] == "/api/0/organizations/acme/issues/7/"
        assert detail.permalink.endswith("/issues/7/")
        assert detail.type == "KeyError"
        assert detail.value == "'user_id'"
        assert detail.project == "web"
        assert detail.platform == "python"


class TestListProjects:
    """Tests for the organization projects endpoint."""

    def test_slugs(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, json=[
                {"id": "1", "slug": "web", "name": "Web"},
                {"id": "2", "slug": "api", "name": "API"},
            ])

        with make_client(handler) as client:
            slugs = client.list_projects("acme")

        assert seen["path"] == "/api/0/organizations/acme/projects/"
        assert slugs == ["web", "api"]

    def test_malformed_project(self):
        from sentry_tui.client import ApiError

        def handler(request):
            return httpx.Response(200, json=[{"id": "1"}])

        with make_client(handler) as client:
            with pytest.raises(ApiError):
                client.list_projects("acme")


class TestErrorMapping:
    """Tests for mapping HTTP failures onto exceptions."""

    @pytest.mark.parametrize("status", [401, 403])
    def test_unauthorized(self, status):
        from sentry_tui.client import UnauthorizedError

        with make_client(lambda request: httpx.Response(status)) as client:
            with pytest.raises(UnauthorizedError) as excinfo:
                client.list_issues("acme", "web")
        assert excinfo.value.status_code == status

    def test_not_found(self):
        from sentry_tui.client import NotFoundError

        with make_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(NotFoundError):
                client.get_issue("acme", "web", "1")

    def test_rate_limited_with_header(self):
        """Test Retry-After is honored."""
        from sentry_tui.client import RateLimitedError

        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "42"})

        with make_client(handler) as client:
            with pytest.raises(RateLimitedError) as excinfo:
                client.list_issues("acme", "web")
        assert excinfo.value.retry_after == 42

    def test_rate_limited_default(self):
        """Test a 429 without Retry-After falls back to the default."""
        from sentry_tui.client import RateLimitedError

        with make_client(lambda request: httpx.Response(429), default_retry_after=60) as client:
            with pytest.raises(RateLimitedError) as excinfo:
                client.list_issues("acme", "web")
        assert excinfo.value.retry_after == 60

    def test_server_error_is_network_error(self):
        from sentry_tui.client import NetworkError

        with make_client(lambda request: httpx.Response(502)) as client:
            with pytest.raises(NetworkError):
                client.list_issues("acme", "web")

    def test_transport_error(self):
        """Test connection failures become NetworkError."""
        from sentry_tui.client import NetworkError

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(handler) as client:
            with pytest.raises(NetworkError):
                client.list_issues("acme", "web")

    def test_other_status(self):
        from sentry_tui.client import ApiError, NetworkError

        with make_client(lambda request: httpx.Response(400)) as client:
            with pytest.raises(ApiError) as excinfo:
                client.list_issues("acme", "web")
        assert not isinstance(excinfo.value, NetworkError)
        assert excinfo.value.status_code == 400


class TestParseRetryAfter:
    """Tests for Retry-After parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [("30", 30.0), ("1.5", 1.5), (None, 60.0), ("", 60.0), ("soon", 60.0), ("-5", 0.0)],
    )
    def test_values(self, value, expected):
        from sentry_tui.client import parse_retry_after

        assert parse_retry_after(value, 60.0) == expected
