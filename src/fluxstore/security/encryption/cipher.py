"""Security encryption – AES-256-GCM field cipher."""
from __future__ import annotations

import base64
import json
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from fluxstore.kernel.errors import DecryptionError, EncryptionError

__all__ = ["AesGcmFieldCipher"]


class AesGcmFieldCipher:
    """Encrypts one JSON value into a ``{ciphertext, nonce, tag}`` envelope.

    12-byte random nonce, 16-byte authentication tag, each part base64
    text.  The value is JSON-encoded first so numbers and lists round-trip
    with their type.  *associated_data* (the field name) is authenticated,
    so an envelope copied into another field fails to decrypt.
    """

    NONCE_LEN = 12
    TAG_LEN = 16

    def encrypt(self, key: bytes, value: Any, associated_data: bytes | None = None) -> dict[str, str]:
        try:
            aesgcm = AESGCM(key)
            nonce = os.urandom(self.NONCE_LEN)
            plaintext = json.dumps(value, separators=(",", ":")).encode()
            sealed = aesgcm.encrypt(nonce, plaintext, associated_data)
        except (TypeError, ValueError) as exc:
            raise EncryptionError("Could not encrypt field value", cause=exc) from exc
        ciphertext, tag = sealed[: -self.TAG_LEN], sealed[-self.TAG_LEN :]
        return {
            "ciphertext": base64.b64encode(ciphertext).decode(),
            "nonce": base64.b64encode(nonce).decode(),
            "tag": base64.b64encode(tag).decode(),
        }

    def decrypt(self, key: bytes, envelope: dict[str, str], associated_data: bytes | None = None) -> Any:
        try:
            ciphertext = base64.b64decode(envelope["ciphertext"], validate=True)
            nonce = base64.b64decode(envelope["nonce"], validate=True)
            tag = base64.b64decode(envelope["tag"], validate=True)
        except (KeyError, ValueError) as exc:
            raise DecryptionError("Malformed encrypted envelope", cause=exc) from exc
        if len(nonce) != self.NONCE_LEN or len(tag) != self.TAG_LEN:
            raise DecryptionError("Malformed encrypted envelope")
        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, associated_data)
        except InvalidTag as exc:
            raise DecryptionError("Authentication tag did not verify", cause=exc) from exc
        except ValueError as exc:
            raise DecryptionError("Invalid key material", cause=exc) from exc
        return json.loads(plaintext)
