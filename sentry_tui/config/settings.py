"""Configuration settings for sentry-tui."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

APP_NAME = "sentry-tui"


class SettingsError(ValueError):
    """An environment variable holds a value settings cannot use."""


def _env_seconds(name: str, default: float) -> float:
    """Positive number of seconds from an environment variable."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        seconds = float(value)
    except ValueError:
        raise SettingsError(f"{name} must be a number of seconds, got {value!r}")
    if seconds <= 0:
        raise SettingsError(f"{name} must be greater than zero, got {value!r}")
    return seconds


def default_config_path() -> Path:
    """Per-user location of the organizations file."""
    base = os.getenv("XDG_CONFIG_HOME")
    config_dir = Path(base) if base else Path.home() / ".config"
    return config_dir / APP_NAME / "config.json"


@dataclass
class ApiConfig:
    """Configuration for the Sentry REST API."""

    base_url: str = "https://sentry.io/api/0"
    timeout: float = 15.0  # Seconds per request
    stats_period: str = "14d"
    query: str = "is:unresolved"
    sort: str = "date"


@dataclass
class MonitorConfig:
    """Configuration for polling and the live dashboard."""

    monitor_interval: float = 5.0  # Dashboard tick, seconds
    refresh_interval: float = 60.0  # Issue list background refresh, seconds
    dashboard_limit: int = 10  # Top issues by event count
    default_retry_after: float = 60.0  # Used when a 429 carries no Retry-After


@dataclass
class Settings:
    """Main settings container."""

    api: ApiConfig = field(default_factory=ApiConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)

    # Project used when an organization has no default project
    default_project: str = "default"

    # Paths
    config_path: Path = field(default_factory=default_config_path)
    cache_dir: Path = field(default_factory=lambda: Path.home() / ".cache" / APP_NAME)

    # Logging
    log_level: str = "WARNING"
    log_file: Optional[Path] = None

    @property
    def tui_log_file(self) -> Path:
        """Log file used while the terminal is in raw mode."""
        return self.log_file or self.cache_dir / f"{APP_NAME}.log"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Create settings from environment variables.

        Raises:
            SettingsError: If a numeric variable is not a positive number
        """
        settings = cls()

        # Override from environment
        if url := os.getenv("SENTRY_TUI_API_URL"):
            settings.api.base_url = url.rstrip("/")

        settings.api.timeout = _env_seconds("SENTRY_TUI_TIMEOUT", settings.api.timeout)
        settings.monitor.monitor_interval = _env_seconds(
            "SENTRY_TUI_MONITOR_INTERVAL", settings.monitor.monitor_interval
        )
        settings.monitor.refresh_interval = _env_seconds(
            "SENTRY_TUI_REFRESH_INTERVAL", settings.monitor.refresh_interval
        )

        if project := os.getenv("SENTRY_TUI_DEFAULT_PROJECT"):
            settings.default_project = project

        if config_path := os.getenv("SENTRY_TUI_CONFIG"):
            settings.config_path = Path(config_path)

        if log_file := os.getenv("SENTRY_TUI_LOG_FILE"):
            settings.log_file = Path(log_file)

        if log_level := os.getenv("LOG_LEVEL"):
            settings.log_level = log_level

        return settings


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def configure(settings: Optional[Settings]) -> None:
    """Set the global settings instance (None re-reads the environment)."""
    global _settings
    _settings = settings
