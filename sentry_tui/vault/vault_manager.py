"""Credential vault for per-organization access tokens.

Tokens are sealed with AES-256-GCM under a single installation key kept in
the OS secret store. The organization slug is bound into each credential as
associated data, so a credential copied onto another organization fails to
open.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from ..models import Credential
from ..utils.logging import get_logger
from .crypto import TokenCipher, zero_buffer
from .exceptions import KeyUnavailableError, TamperedError
from .keystore import SecretStore

logger = get_logger(__name__)

AAD_PREFIX = b"sentry-tui:credential:"


def associated_data(org_slug: str) -> bytes:
    """Associated data binding a credential to its organization."""
    return AAD_PREFIX + org_slug.encode("utf-8")


class CredentialVault:
    """
    Seals and opens access tokens.

    Usage:
        vault = CredentialVault()
        credential = vault.seal(token, org.slug)
        token = vault.open(credential)
    """

    def __init__(self, store: Optional[SecretStore] = None):
        """
        Initialize the vault.

        Args:
            store: Secret store wrapper (default: keyring with global config)
        """
        self.store = store or SecretStore()

    def ensure_key(self) -> bytearray:
        """Return the installation key, creating it on first run.

        The caller owns the returned buffer and must zero it.
        """
        return self.store.ensure_key()

    @contextmanager
    def _key(self, create: bool) -> Iterator[bytearray]:
        """Hold the key for the duration of one cipher call."""
        if create:
            key = self.ensure_key()
        else:
            key = self.store.load_key()
            if key is None:
                raise KeyUnavailableError(
                    "No vault key found in the OS secret store. Run 'login' again."
                )
        try:
            yield key
        finally:
            zero_buffer(key)

    def seal(self, token: str, org_slug: str) -> Credential:
        """
        Encrypt a token for an organization.

        Args:
            token: Plaintext access token
            org_slug: Organization the token belongs to

        Returns:
            Credential with ciphertext and a freshly generated nonce

        Raises:
            KeyUnavailableError: If the key cannot be retrieved or stored
        """
        plaintext = bytearray(token.encode("utf-8"))
        try:
            with self._key(create=True) as key:
                cipher = TokenCipher(key)
                ciphertext, nonce = cipher.encrypt(plaintext, associated_data(org_slug))
        finally:
            zero_buffer(plaintext)

        logger.debug(f"Sealed credential for organization {org_slug}")
        return Credential(org_slug=org_slug, ciphertext=ciphertext, nonce=nonce)

    def open(self, credential: Credential) -> str:
        """
        Decrypt and authenticate a credential.

        Raises:
            TamperedError: If authentication fails for any reason
            KeyUnavailableError: If the key cannot be retrieved
        """
        with self._key(create=False) as key:
            cipher = TokenCipher(key)
            plaintext = bytearray(
                cipher.decrypt(
                    credential.ciphertext,
                    credential.nonce,
                    associated_data(credential.org_slug),
                )
            )
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise TamperedError()
        finally:
            zero_buffer(plaintext)
