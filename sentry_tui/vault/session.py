"""Token session for the interactive runtime.

Opens each organization's credential once, when the user switches to it,
and keeps the token in memory until the session ends so the render loop
never touches the OS secret store.
"""

from typing import Optional

from ..models import Organization
from ..utils.logging import get_logger
from .exceptions import NotLoggedInError
from .vault_manager import CredentialVault

logger = get_logger(__name__)


class TokenSession:
    """Caches opened tokens keyed by organization slug."""

    def __init__(self, vault: Optional[CredentialVault] = None):
        self.vault = vault or CredentialVault()
        self._tokens: dict[str, str] = {}

    def token_for(self, org: Organization) -> str:
        """
        Get the access token for an organization.

        Raises:
            NotLoggedInError: If the organization has no credential
            CryptoError: If the credential cannot be opened
        """
        if org.slug in self._tokens:
            return self._tokens[org.slug]

        if org.credential is None:
            raise NotLoggedInError(org.name)

        token = self.vault.open(org.credential)
        self._tokens[org.slug] = token
        logger.debug(f"Opened credential for organization {org.slug}")
        return token

    def is_open(self, org_slug: str) -> bool:
        """Check whether a token is cached for an organization."""
        return org_slug in self._tokens

    def clear(self) -> int:
        """Drop all cached tokens. Returns how many were dropped."""
        count = len(self._tokens)
        self._tokens.clear()
        return count
