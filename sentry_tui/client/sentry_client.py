"""Sentry REST API client.

Stateless request/response wrapper: one bearer token, one httpx client.
Safe to call from worker threads.
"""

from typing import Any, Optional

import httpx

from ..config.settings import ApiConfig, get_settings
from ..models import Issue, IssueDetail
from ..utils.logging import get_logger
from .exceptions import (
    ApiError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
)

logger = get_logger(__name__)


def parse_retry_after(value: Optional[str], default: float) -> float:
    """Parse a Retry-After header given in seconds."""
    if not value:
        return default
    try:
        return max(float(value), 0.0)
    except ValueError:
        return default


class SentryClient:
    """Client for the issue endpoints of the Sentry API."""

    def __init__(
        self,
        token: str,
        config: Optional[ApiConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        default_retry_after: Optional[float] = None,
    ):
        """Initialize the client.

        Args:
            token: Bearer token for the organization
            config: API configuration (default from settings)
            transport: Custom httpx transport (used by tests)
            default_retry_after: Backoff when a 429 carries no Retry-After
        """
        settings = get_settings()
        self.config = config or settings.api
        self.default_retry_after = (
            default_retry_after
            if default_retry_after is not None
            else settings.monitor.default_retry_after
        )

        self._client = httpx.Client(
            base_url=self.config.base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "SentryClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Issue a GET request and map failures onto ApiError subclasses."""
        try:
            response = self._client.get(path, params=params)
        except httpx.TransportError as e:
            raise NetworkError(f"Request to {path} failed: {type(e).__name__}") from e

        status = response.status_code
        if status in (401, 403):
            raise UnauthorizedError(status_code=status)
        if status == 404:
            raise NotFoundError(f"Not found: {path}")
        if status == 429:
            retry_after = parse_retry_after(
                response.headers.get("Retry-After"), self.default_retry_after
            )
            logger.info(f"Rate limited on {path}, retry after {retry_after}s")
            raise RateLimitedError(retry_after)
        if status >= 500:
            raise NetworkError(f"Server error {status} from {path}", status)
        if not response.is_success:
            raise ApiError(f"API request failed: {status}", status)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {path}", status) from e

    def list_issues(
        self,
        org: str,
        project: str,
        cursor: Optional[str] = None,
    ) -> list[Issue]:
        """
        List unresolved issues for a project, most recent first.

        Args:
            org: Organization slug
            project: Project slug
            cursor: Pagination cursor from a previous response

        Returns:
            Issues in API order
        """
        params: dict[str, Any] = {
            "statsPeriod": self.config.stats_period,
            "query": self.config.query,
            "sort": self.config.sort,
        }
        if cursor:
            params["cursor"] = cursor

        data = self._get(f"/projects/{org}/{project}/issues/", params=params)
        if not isinstance(data, list):
            raise ApiError("Unexpected response shape for issue list")

        try:
            return [Issue.from_api(item) for item in data]
        except (KeyError, TypeError) as e:
            raise ApiError(f"Malformed issue in response: {e}") from e

    def get_issue(self, org: str, project: str, issue_id: str) -> IssueDetail:
        """
        Fetch one issue with its detail fields.

        The detail endpoint is scoped by organization; the project is
        checked against the response when it reports one.
        """
        data = self._get(f"/organizations/{org}/issues/{issue_id}/")
        if not isinstance(data, dict):
            raise ApiError("Unexpected response shape for issue detail")

        try:
            detail = IssueDetail.from_api(data)
        except (KeyError, TypeError) as e:
            raise ApiError(f"Malformed issue detail: {e}") from e

        if detail.project and detail.project != project:
            logger.debug(f"Issue {issue_id} belongs to project {detail.project}, not {project}")
        return detail

    def list_projects(self, org: str) -> list[str]:
        """Slugs of the projects an organization's token can see."""
        data = self._get(f"/organizations/{org}/projects/")
        if not isinstance(data, list):
            raise ApiError("Unexpected response shape for project list")

        try:
            return [item["slug"] for item in data]
        except (KeyError, TypeError) as e:
            raise ApiError(f"Malformed project in response: {e}") from e
