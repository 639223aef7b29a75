"""Command-line interface for sentry-tui."""
