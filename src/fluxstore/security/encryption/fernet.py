"""Security encryption – Fernet wrapping of data keys at rest."""
from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from fluxstore.kernel.errors import DecryptionError

__all__ = ["MasterKeyWrapper"]


class MasterKeyWrapper:
    """Wraps owner data keys with a Fernet master key before they are stored.

    Several master keys may be given, newest first: wrapping always uses the
    first, unwrapping tries each (``MultiFernet``), and :meth:`rotate`
    re-wraps a token under the newest key.
    """

    def __init__(self, keys: list[bytes | str]) -> None:
        if not keys:
            raise ValueError("At least one master key is required")
        fernet_keys = [Fernet(k if isinstance(k, bytes) else k.encode()) for k in keys]
        self._multi = MultiFernet(fernet_keys)

    @classmethod
    def generate_key(cls) -> bytes:
        return Fernet.generate_key()

    def wrap(self, key_material: bytes) -> str:
        return self._multi.encrypt(key_material).decode()

    def unwrap(self, token: str) -> bytes:
        try:
            return self._multi.decrypt(token.encode())
        except InvalidToken as exc:
            raise DecryptionError("Stored data key could not be unwrapped", cause=exc) from exc

    def rotate(self, token: str) -> str:
        try:
            return self._multi.rotate(token.encode()).decode()
        except InvalidToken as exc:
            raise DecryptionError("Stored data key could not be re-wrapped", cause=exc) from exc
