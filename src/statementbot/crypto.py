"""Cryptographic primitives for statementbot.

Key derivation: PBKDF2-HMAC-SHA512 (100 000 iterations, 32-byte key).
Encryption:     AES-256-GCM (96-bit IV, 128-bit authentication tag).

Values are serialised to JSON before encryption, so anything JSON can
represent round-trips; binary data must be base64-encoded by the caller.
"""

from __future__ import annotations

import base64
import binascii
import json
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import ValidationError

from .errors import DecryptionError
from .models import EncryptedEnvelope

SALT_SIZE = 32
IV_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32
PBKDF2_ITERATIONS = 100_000


def generate_salt() -> bytes:
    """Return a cryptographically-random 32-byte salt."""
    return os.urandom(SALT_SIZE)


def generate_iv() -> bytes:
    """Return a cryptographically-random 96-bit initialisation vector."""
    return os.urandom(IV_SIZE)


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 32-byte AES-256 key from *password* and *salt*."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class Crypter:
    """Encrypts and decrypts JSON-representable values with a fixed key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"encryption key must be {KEY_SIZE} bytes, got {len(key)}")
        self._aead = AESGCM(bytes(key))

    @classmethod
    def from_password_and_salt(cls, password: str, salt: bytes) -> Crypter:
        return cls(derive_key(password, salt))

    @classmethod
    def from_password(cls, password: str) -> tuple[Crypter, bytes]:
        """Return a new crypter keyed from *password* and a fresh salt, plus that salt.

        The salt must be persisted by the caller; without it the key cannot
        be derived again.
        """
        salt = generate_salt()
        return cls.from_password_and_salt(password, salt), salt

    def encrypt(self, value: Any) -> str:
        """Encrypt *value* into an envelope string; a fresh IV is used on every call."""
        plaintext = json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        iv = generate_iv()
        sealed = self._aead.encrypt(iv, plaintext, None)
        envelope = EncryptedEnvelope(
            cipher_text=_b64(sealed[:-TAG_SIZE]),
            auth_tag=_b64(sealed[-TAG_SIZE:]),
            initialization_vector=_b64(iv),
        )
        return envelope.to_string()

    def decrypt(self, data: str) -> Any:
        """Decrypt an envelope string; raises :class:`DecryptionError` on failure."""
        try:
            envelope = EncryptedEnvelope.from_string(data)
            cipher_text = base64.b64decode(envelope.cipher_text, validate=True)
            auth_tag = base64.b64decode(envelope.auth_tag, validate=True)
            iv = base64.b64decode(envelope.initialization_vector, validate=True)
        except (binascii.Error, ValidationError, UnicodeDecodeError) as exc:
            raise DecryptionError("Decryption failed: malformed envelope.") from exc

        try:
            plaintext = self._aead.decrypt(iv, cipher_text + auth_tag, None)
        except (InvalidTag, ValueError) as exc:
            raise DecryptionError(
                "Decryption failed: wrong password or corrupted data."
            ) from exc

        return json.loads(plaintext.decode("utf-8"))
