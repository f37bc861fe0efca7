"""Tests for credential encryption."""

from __future__ import annotations

import pytest

from dealdesk.config import settings
from dealdesk.security.crypto import (
    DecryptionError,
    EncryptionNotConfigured,
    decrypt_secret,
    encrypt_secret,
)
from dealdesk.security.passwords import hash_password, verify_password


def test_roundtrip_uses_fresh_nonce():
    first = encrypt_secret("api-key-123")
    second = encrypt_secret("api-key-123")
    assert first != second
    assert decrypt_secret(first) == "api-key-123"
    assert decrypt_secret(second) == "api-key-123"


def test_malformed_ciphertext_raises_decryption_error():
    with pytest.raises(DecryptionError):
        decrypt_secret("definitely-not-a-token")


def test_wrong_key_raises_decryption_error():
    token = encrypt_secret("value", key="key-one")
    with pytest.raises(DecryptionError):
        decrypt_secret(token, key="key-two")


def test_missing_key(monkeypatch):
    monkeypatch.setattr(settings, "encryption_key", "")
    with pytest.raises(EncryptionNotConfigured):
        encrypt_secret("value")


def test_password_hashing():
    stored = hash_password("correct horse")
    assert stored.startswith("pbkdf2_sha256$")
    assert verify_password("correct horse", stored)
    assert not verify_password("wrong horse", stored)
    assert not verify_password("correct horse", "garbage")
