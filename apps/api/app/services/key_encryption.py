"""Encryption of app signing keys at rest.

Ciphertexts are ``iv_hex:tag_hex:ciphertext_hex`` produced with AES-256-GCM
under a key derived from the configured ``app_pk_secret`` with scrypt.
"""

from __future__ import annotations

import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

_IV_LENGTH = 16
_TAG_LENGTH = 16
_KDF_SALT = b"salt"
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1


class SecretDecryptionError(RuntimeError):
    """Raised when a stored secret cannot be decrypted."""


def _derive_key(secret: str) -> bytes:
    if not secret:
        raise SecretDecryptionError("app_pk_secret is not configured")
    return hashlib.scrypt(
        secret.encode("utf-8"),
        salt=_KDF_SALT,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=32,
    )


def encrypt_secret(plaintext: str, *, secret: str) -> str:
    key = _derive_key(secret)
    iv = os.urandom(_IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-_TAG_LENGTH], sealed[-_TAG_LENGTH:]
    return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"


def decrypt_secret(encrypted: str, *, secret: str) -> str:
    parts = encrypted.split(":")
    if len(parts) != 3:
        raise SecretDecryptionError("Invalid encrypted text format")
    key = _derive_key(secret)
    try:
        iv, tag, ciphertext = (bytes.fromhex(part) for part in parts)
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except (ValueError, InvalidTag) as exc:
        raise SecretDecryptionError("Unable to decrypt secret") from exc
    return plaintext.decode("utf-8")
