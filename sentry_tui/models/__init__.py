"""Data models for sentry-tui."""

from .issue import Issue, IssueDetail, format_timestamp, parse_timestamp
from .organization import Credential, Organization

__all__ = [
    "Credential",
    "Organization",
    "Issue",
    "IssueDetail",
    "format_timestamp",
    "parse_timestamp",
]
