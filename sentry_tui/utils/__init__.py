"""Utility modules for sentry-tui."""

from .logging import (
    console,
    err_console,
    get_logger,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "console",
    "err_console",
]
