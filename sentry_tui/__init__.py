"""sentry-tui - Terminal client for browsing and monitoring Sentry issues."""

__version__ = "0.1.0"
__author__ = "sentry-tui contributors"

from .models import Credential, Issue, IssueDetail, Organization

__all__ = [
    "__version__",
    "Credential",
    "Issue",
    "IssueDetail",
    "Organization",
]
