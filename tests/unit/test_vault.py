"""Unit tests for the credential vault."""

import base64
import dataclasses

import keyring.errors
import pytest


def flip_bit(data: bytes, bit: int) -> bytes:
    buffer = bytearray(data)
    buffer[bit // 8] ^= 1 << (bit % 8)
    return bytes(buffer)


class TestTokenCipher:
    """Tests for the AES-256-GCM primitive."""

    def test_encrypt_decrypt_roundtrip(self):
        """Test decrypting returns the original plaintext."""
        from sentry_tui.vault.crypto import TokenCipher, generate_key

        cipher = TokenCipher(generate_key())
        ciphertext, nonce = cipher.encrypt(b"secret", b"aad")

        assert cipher.decrypt(ciphertext, nonce, b"aad") == b"secret"

    def test_fresh_nonce_per_encryption(self):
        """Test the same plaintext never produces the same nonce or ciphertext."""
        from sentry_tui.vault.crypto import NONCE_SIZE, TokenCipher, generate_key

        cipher = TokenCipher(generate_key())
        first = cipher.encrypt(b"secret", b"aad")
        second = cipher.encrypt(b"secret", b"aad")

        assert len(first[1]) == NONCE_SIZE
        assert first[1] != second[1]
        assert first[0] != second[0]

    def test_wrong_associated_data(self):
        """Test associated data is authenticated."""
        from sentry_tui.vault import TamperedError
        from sentry_tui.vault.crypto import TokenCipher, generate_key

        cipher = TokenCipher(generate_key())
        ciphertext, nonce = cipher.encrypt(b"secret", b"aad")

        with pytest.raises(TamperedError):
            cipher.decrypt(ciphertext, nonce, b"other")

    def test_zero_buffer(self):
        """Test buffers are overwritten in place."""
        from sentry_tui.vault.crypto import zero_buffer

        buffer = bytearray(b"plaintext")
        zero_buffer(buffer)

        assert buffer == bytearray(9)


class TestCredentialVault:
    """Tests for sealing and opening tokens."""

    def test_seal_open_roundtrip(self, vault):
        """Test a sealed token opens to the same value."""
        credential = vault.seal("sntrys_abc123", "acme")

        assert credential.org_slug == "acme"
        assert b"sntrys_abc123" not in credential.ciphertext
        assert vault.open(credential) == "sntrys_abc123"

    def test_unicode_token(self, vault):
        """Test non-ASCII tokens survive the round trip."""
        credential = vault.seal("tøken-ünïcode", "acme")

        assert vault.open(credential) == "tøken-ünïcode"

    def test_key_generated_once(self, vault, memory_keyring):
        """Test the first seal stores a key and later seals reuse it."""
        vault.seal("one", "acme")
        stored = dict(memory_keyring.passwords)
        vault.seal("two", "acme")

        assert list(stored) == [("sentry-tui", "vault-key")]
        assert memory_keyring.passwords == stored
        assert len(base64.b64decode(stored[("sentry-tui", "vault-key")])) == 32

    def test_keyring_service_from_env(self, memory_keyring, monkeypatch):
        """Test the key entry lives under the configured secret store service."""
        from sentry_tui.vault import CredentialVault
        from sentry_tui.vault.config import VaultConfig
        from sentry_tui.vault.keystore import SecretStore

        monkeypatch.setenv("SENTRY_TUI_KEYRING_SERVICE", "sentry-tui-staging")
        vault = CredentialVault(SecretStore(VaultConfig.from_env()))

        credential = vault.seal("tok", "acme")

        assert list(memory_keyring.passwords) == [("sentry-tui-staging", "vault-key")]
        assert vault.open(credential) == "tok"

    def test_tampered_ciphertext_every_bit(self, vault):
        """Test flipping any ciphertext bit is detected."""
        from sentry_tui.vault import TamperedError

        credential = vault.seal("tok-123", "acme")

        for bit in range(len(credential.ciphertext) * 8):
            tampered = dataclasses.replace(
                credential, ciphertext=flip_bit(credential.ciphertext, bit)
            )
            with pytest.raises(TamperedError):
                vault.open(tampered)

    def test_tampered_nonce_every_bit(self, vault):
        """Test flipping any nonce bit is detected."""
        from sentry_tui.vault import TamperedError

        credential = vault.seal("tok-123", "acme")

        for bit in range(len(credential.nonce) * 8):
            tampered = dataclasses.replace(credential, nonce=flip_bit(credential.nonce, bit))
            with pytest.raises(TamperedError):
                vault.open(tampered)

    def test_credential_bound_to_org(self, vault):
        """Test a credential moved to another organization does not open."""
        from sentry_tui.vault import TamperedError

        credential = vault.seal("tok-123", "acme")
        moved = dataclasses.replace(credential, org_slug="globex")

        with pytest.raises(TamperedError):
            vault.open(moved)

    def test_wrong_key(self, vault, memory_keyring):
        """Test a replaced key reads as tampering, with the same message."""
        from sentry_tui.vault import TamperedError
        from sentry_tui.vault.crypto import generate_key

        credential = vault.seal("tok-123", "acme")
        memory_keyring.passwords[("sentry-tui", "vault-key")] = base64.b64encode(
            generate_key()
        ).decode()

        with pytest.raises(TamperedError) as excinfo:
            vault.open(credential)
        assert str(excinfo.value) == str(TamperedError())

    def test_missing_key(self, vault, memory_keyring):
        """Test opening without a stored key fails as key unavailable."""
        from sentry_tui.vault import KeyUnavailableError

        credential = vault.seal("tok-123", "acme")
        memory_keyring.passwords.clear()

        with pytest.raises(KeyUnavailableError):
            vault.open(credential)

    def test_keyring_failure(self, vault, memory_keyring, monkeypatch):
        """Test secret store errors surface as KeyUnavailableError."""
        from sentry_tui.vault import KeyUnavailableError

        def broken(service, username):
            raise keyring.errors.KeyringLocked("locked")

        monkeypatch.setattr(memory_keyring, "get_password", broken)

        with pytest.raises(KeyUnavailableError):
            vault.seal("tok-123", "acme")

    @pytest.mark.parametrize("stored", ["not base64!", base64.b64encode(b"short").decode()])
    def test_invalid_stored_key(self, vault, memory_keyring, stored):
        """Test unusable keyring values are rejected."""
        from sentry_tui.vault import KeyUnavailableError

        memory_keyring.passwords[("sentry-tui", "vault-key")] = stored

        with pytest.raises(KeyUnavailableError):
            vault.seal("tok-123", "acme")

    def test_credential_repr_hides_bytes(self, vault):
        """Test the repr of a credential does not show ciphertext."""
        credential = vault.seal("tok-123", "acme")

        assert repr(credential.ciphertext) not in repr(credential)
        assert "tok-123" not in repr(credential)


class TestTokenSession:
    """Tests for the in-memory token session."""

    def test_token_cached(self, vault):
        """Test each credential is opened once per session."""
        from unittest.mock import patch

        from sentry_tui.models import Organization
        from sentry_tui.vault import TokenSession

        org = Organization(name="Acme", slug="acme", credential=vault.seal("tok", "acme"))
        session = TokenSession(vault)

        with patch.object(vault, "open", wraps=vault.open) as opened:
            assert session.token_for(org) == "tok"
            assert session.token_for(org) == "tok"

        assert opened.call_count == 1
        assert session.is_open("acme")

    def test_not_logged_in(self, vault):
        """Test organizations without a credential raise NotLoggedInError."""
        from sentry_tui.models import Organization
        from sentry_tui.vault import NotLoggedInError, TokenSession

        session = TokenSession(vault)

        with pytest.raises(NotLoggedInError, match="Globex"):
            session.token_for(Organization(name="Globex", slug="globex"))

    def test_clear(self, vault):
        """Test clearing forgets every token."""
        from sentry_tui.models import Organization
        from sentry_tui.vault import TokenSession

        session = TokenSession(vault)
        session.token_for(Organization(name="Acme", slug="acme", credential=vault.seal("t", "acme")))

        assert session.clear() == 1
        assert not session.is_open("acme")
