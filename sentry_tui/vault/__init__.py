"""Vault encryption module for sentry-tui.

Provides AES-256-GCM encryption for per-organization access tokens. The
symmetric key lives only in the OS secret store.

Usage:
    from sentry_tui.vault import CredentialVault
    vault = CredentialVault()
    credential = vault.seal(token, org.slug)
    token = vault.open(credential)
"""

# Exceptions
from .exceptions import (
    CryptoError,
    KeyUnavailableError,
    NotLoggedInError,
    TamperedError,
)

# Configuration
from .config import (
    VaultConfig,
    get_vault_config,
    set_vault_config,
)

# Secret store
from .keystore import SecretStore

# Vault operations
from .vault_manager import CredentialVault

# Session
from .session import TokenSession

__all__ = [
    # Exceptions
    "CryptoError",
    "KeyUnavailableError",
    "TamperedError",
    "NotLoggedInError",
    # Configuration
    "VaultConfig",
    "get_vault_config",
    "set_vault_config",
    # Secret store
    "SecretStore",
    # Vault
    "CredentialVault",
    # Session
    "TokenSession",
]
