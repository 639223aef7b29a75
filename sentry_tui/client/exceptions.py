"""Tracker API exceptions for sentry-tui."""

from typing import Optional


class ApiError(Exception):
    """Base exception for tracker API failures."""

    def __init__(self, message: str = "API request failed.", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(ApiError):
    """Raised when the token is invalid or expired (401/403)."""

    def __init__(
        self,
        message: str = "Access token rejected. Run 'login' again.",
        status_code: Optional[int] = 401,
    ):
        super().__init__(message, status_code)


class RateLimitedError(ApiError):
    """Raised on 429. Polling must wait at least retry_after seconds."""

    def __init__(self, retry_after: float, message: str = ""):
        super().__init__(message or f"Rate limited; retrying in {retry_after:.0f}s.", 429)
        self.retry_after = retry_after


class NotFoundError(ApiError):
    """Raised when the organization, project or issue does not exist (404)."""

    def __init__(self, message: str = "Not found.", status_code: Optional[int] = 404):
        super().__init__(message, status_code)


class NetworkError(ApiError):
    """Raised on transport failures and server errors. Transient."""

    def __init__(self, message: str = "Network error.", status_code: Optional[int] = None):
        super().__init__(message, status_code)
