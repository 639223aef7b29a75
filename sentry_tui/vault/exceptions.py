"""Vault exceptions for sentry-tui credential encryption."""


class CryptoError(Exception):
    """Base exception for vault operations."""

    pass


class KeyUnavailableError(CryptoError):
    """Raised when the OS secret store cannot supply the vault key."""

    def __init__(self, message: str = "Vault key unavailable from the OS secret store."):
        super().__init__(message)


class TamperedError(CryptoError):
    """Raised when a credential fails authentication.

    Corrupted ciphertext, a corrupted nonce and a wrong key all end up here
    with the same message.
    """

    def __init__(
        self,
        message: str = "Stored credential could not be decrypted. Run 'login' again.",
    ):
        super().__init__(message)


class NotLoggedInError(CryptoError):
    """Raised when an organization has no stored credential."""

    def __init__(self, org: str = ""):
        message = (
            f"Not logged in for organization '{org}'. Use 'login' first."
            if org
            else "Not logged in. Use 'login' first."
        )
        super().__init__(message)
