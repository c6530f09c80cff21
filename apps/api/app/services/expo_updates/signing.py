"""RSA-SHA256 signing of manifest and directive payloads."""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from typing import Literal

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from http_sfv import Dictionary, Item

from apps.api.app.services.expo_updates.errors import SigningError
from apps.api.app.services.key_encryption import SecretDecryptionError

logger = logging.getLogger("ota.updates")

SIGNATURE_KEY_ID = "main"
SigningFailureMode = Literal["fail_open", "fail_closed"]


def format_signature_header(signature_b64: str) -> str:
    """Serialize an RFC 8941 dictionary: `sig="<base64>", keyid="main"`."""
    header = Dictionary()
    header["sig"] = Item(signature_b64)
    header["keyid"] = Item(SIGNATURE_KEY_ID)
    return str(header)


def sign_payload(payload_json: str, private_key_pem: str) -> str:
    """Return the ``expo-signature`` header value for exactly ``payload_json``.

    Raises ``ValueError``/``TypeError`` from ``cryptography`` when the key is
    unusable; callers decide whether that is fatal.
    """
    private_key = serialization.load_pem_private_key(
        private_key_pem.encode("utf-8"), password=None
    )
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise TypeError("signing key must be an RSA private key")
    signature = private_key.sign(
        payload_json.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256()
    )
    return format_signature_header(base64.b64encode(signature).decode("ascii"))


class PayloadSigner:
    """Applies the signing failure policy around ``sign_payload``.

    The signing key is decrypted on every call and only lives for the
    duration of that call.
    """

    def __init__(
        self,
        *,
        decrypt_key: Callable[[str], str],
        failure_mode: SigningFailureMode = "fail_open",
    ) -> None:
        self._decrypt_key = decrypt_key
        self._failure_mode = failure_mode

    def signature_for(
        self,
        payload_json: str,
        *,
        signing_key_ciphertext: str | None,
        app_id: str,
    ) -> str | None:
        if not signing_key_ciphertext:
            return None
        try:
            return sign_payload(payload_json, self._decrypt_key(signing_key_ciphertext))
        except (SecretDecryptionError, UnsupportedAlgorithm, ValueError, TypeError) as exc:
            if self._failure_mode == "fail_closed":
                logger.error("signing failed for app %s: %s", app_id, type(exc).__name__)
                raise SigningError("Unable to sign update response") from exc
            logger.warning(
                "signing failed for app %s, serving unsigned response: %s",
                app_id,
                type(exc).__name__,
            )
            return None
