"""Reversible encryption for stored third-party credentials."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from ..config import settings


class EncryptionNotConfigured(Exception):
    """Raised when DEALDESK_ENCRYPTION_KEY is missing."""


class DecryptionError(Exception):
    """Raised when ciphertext is malformed, forged or made with another key."""


def _derive_key(source: str) -> bytes:
    digest = hashlib.sha256(source.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def _get_fernet(secret: str | None = None) -> Fernet:
    secret = secret if secret is not None else settings.encryption_key
    if not secret:
        raise EncryptionNotConfigured("DEALDESK_ENCRYPTION_KEY is required for credential storage")
    return Fernet(_derive_key(secret))


def encrypt_secret(value: str, *, key: str | None = None) -> str:
    """Encrypt ``value``; every call uses a fresh random IV, so outputs differ."""
    return _get_fernet(key).encrypt(value.encode("utf-8")).decode("ascii")


def decrypt_secret(token: str, *, key: str | None = None) -> str:
    fernet = _get_fernet(key)
    try:
        return fernet.decrypt(token.encode("ascii")).decode("utf-8")
    except (InvalidToken, UnicodeError, ValueError) as exc:
        raise DecryptionError("Failed to decrypt secret") from exc
