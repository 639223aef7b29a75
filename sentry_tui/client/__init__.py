"""Sentry API client for sentry-tui."""

from .exceptions import (
    ApiError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
)
from .sentry_client import SentryClient, parse_retry_after

__all__ = [
    "SentryClient",
    "parse_retry_after",
    "ApiError",
    "NetworkError",
    "NotFoundError",
    "RateLimitedError",
    "UnauthorizedError",
]
