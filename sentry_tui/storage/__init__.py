"""Persistent configuration for sentry-tui."""

from .config_store import CURRENT_VERSION, Config, ConfigStore, migrate
from .exceptions import (
    ConfigCorruptError,
    ConfigError,
    ConfigIoError,
    DuplicateOrganizationError,
    OrganizationNotFoundError,
)

__all__ = [
    "CURRENT_VERSION",
    "Config",
    "ConfigStore",
    "migrate",
    "ConfigError",
    "ConfigCorruptError",
    "ConfigIoError",
    "DuplicateOrganizationError",
    "OrganizationNotFoundError",
]
