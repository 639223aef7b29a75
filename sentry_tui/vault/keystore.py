"""OS secret store access for the vault key.

The key is stored base64 encoded in a single keyring entry. Nothing else
about the vault lives in the secret store.
"""

import base64
import binascii
from typing import Optional

import keyring
import keyring.errors

from ..utils.logging import get_logger
from .config import VaultConfig, get_vault_config
from .crypto import KEY_SIZE, generate_key, zero_buffer
from .exceptions import KeyUnavailableError

logger = get_logger(__name__)


class SecretStore:
    """Reads and writes the vault key through keyring."""

    def __init__(self, config: Optional[VaultConfig] = None):
        self.config = config or get_vault_config()

    @property
    def service(self) -> str:
        return self.config.keyring_service

    @property
    def username(self) -> str:
        return self.config.keyring_username

    def load_key(self) -> Optional[bytearray]:
        """
        Fetch the stored key.

        Returns:
            Key bytes, or None if no key has been stored yet

        Raises:
            KeyUnavailableError: If the secret store is missing, denies
                access, or holds a value that is not a valid key
        """
        try:
            encoded = keyring.get_password(self.service, self.username)
        except keyring.errors.KeyringError as e:
            logger.warning(f"Secret store unavailable: {type(e).__name__}")
            raise KeyUnavailableError()

        if encoded is None:
            return None

        try:
            key = bytearray(base64.b64decode(encoded, validate=True))
        except (binascii.Error, ValueError):
            raise KeyUnavailableError("Vault key in the OS secret store is not valid base64.")

        if len(key) != KEY_SIZE:
            zero_buffer(key)
            raise KeyUnavailableError("Vault key in the OS secret store has the wrong length.")
        return key

    def store_key(self, key: bytearray) -> None:
        """Write the key to the secret store, replacing any existing entry."""
        encoded = base64.b64encode(key).decode("ascii")
        try:
            keyring.set_password(self.service, self.username, encoded)
        except keyring.errors.KeyringError as e:
            logger.warning(f"Could not write vault key: {type(e).__name__}")
            raise KeyUnavailableError()

    def ensure_key(self) -> bytearray:
        """
        Return the installation key, generating and storing it on first use.

        Two processes racing here both generate a key; the last write wins.
        """
        key = self.load_key()
        if key is not None:
            return key

        logger.info("Generating new vault key")
        key = generate_key()
        try:
            self.store_key(key)
        except KeyUnavailableError:
            zero_buffer(key)
            raise
        return key
