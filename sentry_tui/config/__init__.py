"""Configuration for sentry-tui."""

from .settings import (
    APP_NAME,
    ApiConfig,
    MonitorConfig,
    Settings,
    SettingsError,
    configure,
    default_config_path,
    get_settings,
)

__all__ = [
    "APP_NAME",
    "ApiConfig",
    "MonitorConfig",
    "Settings",
    "SettingsError",
    "configure",
    "default_config_path",
    "get_settings",
]
