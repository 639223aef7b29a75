"""Core cryptographic primitives for credential encryption.

Uses the cryptography library for AES-256-GCM authenticated encryption.
Every seal draws a fresh 96-bit nonce from os.urandom, so a nonce is never
reused under the same key.
"""

import os
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import TamperedError

KEY_SIZE = 32  # 256 bits for AES-256
NONCE_SIZE = 12  # 96 bits for AES-GCM
TAG_SIZE = 16  # 128-bit authentication tag

Buffer = Union[bytes, bytearray, memoryview]


def generate_key() -> bytearray:
    """Generate a new random vault key."""
    return bytearray(os.urandom(KEY_SIZE))


def generate_nonce() -> bytes:
    """Generate a fresh random nonce."""
    return os.urandom(NONCE_SIZE)


def zero_buffer(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    buffer[:] = bytes(len(buffer))


class TokenCipher:
    """
    AES-256-GCM wrapper for short secrets.

    The caller owns the key buffer and is responsible for zeroing it once the
    cipher is no longer needed.
    """

    def __init__(self, key: Buffer):
        """
        Initialize with a 256-bit key.

        Args:
            key: 32-byte encryption key (raw, not base64 encoded)
        """
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
        self.aesgcm = AESGCM(key)

    def encrypt(self, plaintext: Buffer, associated_data: bytes) -> tuple[bytes, bytes]:
        """
        Encrypt plaintext under a fresh nonce.

        Args:
            plaintext: Data to encrypt
            associated_data: Authenticated but unencrypted context

        Returns:
            (ciphertext, nonce); the ciphertext carries the GCM tag
        """
        nonce = generate_nonce()
        return self.aesgcm.encrypt(nonce, plaintext, associated_data), nonce

    def decrypt(self, ciphertext: bytes, nonce: bytes, associated_data: bytes) -> bytes:
        """
        Decrypt and authenticate.

        Raises:
            TamperedError: On any authentication failure
        """
        try:
            return self.aesgcm.decrypt(nonce, ciphertext, associated_data)
        except (InvalidTag, ValueError):
            # ValueError covers nonces of an unusable length
            raise TamperedError()
