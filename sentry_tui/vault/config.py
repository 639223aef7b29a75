"""Vault configuration for sentry-tui credential encryption."""

import os
from dataclasses import dataclass


@dataclass
class VaultConfig:
    """Configuration for vault encryption operations."""

    # OS secret store entry
    keyring_service: str = "sentry-tui"
    keyring_username: str = "vault-key"

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            SENTRY_TUI_KEYRING_SERVICE: Secret store service name (default: sentry-tui)
        """
        config = cls()

        if service := os.getenv("SENTRY_TUI_KEYRING_SERVICE"):
            config.keyring_service = service

        return config


# Global configuration instance
_config: VaultConfig | None = None


def get_vault_config() -> VaultConfig:
    """Get the global vault configuration."""
    global _config
    if _config is None:
        _config = VaultConfig.from_env()
    return _config


def set_vault_config(config: VaultConfig) -> None:
    """Set the global vault configuration."""
    global _config
    _config = config
