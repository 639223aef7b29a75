"""Issue data models.

Issues are read-only snapshots of what the tracker returned; a refresh
replaces the whole list rather than mutating entries.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as sent by the API."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a timestamp for display."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def _as_int(value: Any) -> int:
    # The issues endpoint sends event counts as strings
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class Issue:
    """A tracked error as listed by the issues endpoint."""

    id: str
    short_id: str
    title: str
    level: str = "error"
    status: str = "unresolved"
    count: int = 0
    user_count: int = 0
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    culprit: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Issue":
        """Create from an API response object."""
        return cls(
            id=str(data["id"]),
            short_id=data.get("shortId") or str(data["id"]),
            title=data.get("title", ""),
            level=data.get("level", "error"),
            status=data.get("status", "unresolved"),
            count=_as_int(data.get("count")),
            user_count=_as_int(data.get("userCount")),
            first_seen=parse_timestamp(data.get("firstSeen")),
            last_seen=parse_timestamp(data.get("lastSeen")),
            culprit=data.get("culprit") or "",
        )


@dataclass(frozen=True)
class IssueDetail(Issue):
    """A single issue with the extra fields of the detail endpoint."""

    permalink: str = ""
    platform: str = ""
    type: str = ""
    value: str = ""
    project: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "IssueDetail":
        """Create from an API response object."""
        issue = Issue.from_api(data)
        metadata = data.get("metadata") or {}
        project = data.get("project") or {}
        return cls(
            id=issue.id,
            short_id=issue.short_id,
            title=issue.title,
            level=issue.level,
            status=issue.status,
            count=issue.count,
            user_count=issue.user_count,
            first_seen=issue.first_seen,
            last_seen=issue.last_seen,
            culprit=issue.culprit,
            permalink=data.get("permalink") or "",
            platform=data.get("platform") or "",
            type=metadata.get("type", ""),
            value=metadata.get("value", ""),
            project=project.get("slug", "") if isinstance(project, dict) else str(project),
        )
