"""Security encryption – FieldEncryptor for personal-data payload fields."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fluxstore.kernel.errors import DecryptionError, EncryptionError, SubjectErasedError
from fluxstore.kernel.security import is_envelope
from fluxstore.security.encryption.cipher import AesGcmFieldCipher
from fluxstore.security.encryption.keys import KeyCache, KeyManager

if TYPE_CHECKING:
    from fluxstore.application.event_sourcing.event_map import EventTypeMap

__all__ = ["FieldEncryptor"]


class FieldEncryptor:
    """Encrypts and decrypts the personal fields of event payloads.

    Which fields are personal comes from the :class:`EventTypeMap`; each is
    sealed independently under the owner's key.  Encryption is all or
    nothing: the payload is copied and either every personal field is
    replaced or an error is raised.
    """

    def __init__(
        self,
        key_manager: KeyManager,
        event_map: EventTypeMap,
        cipher: AesGcmFieldCipher | None = None,
    ) -> None:
        self._key_manager = key_manager
        self._event_map = event_map
        self._cipher = cipher or AesGcmFieldCipher()

    def new_cache(self) -> KeyCache:
        """Key cache for one logical operation."""
        return KeyCache(self._key_manager)

    def has_personal_data(self, event_name: str) -> bool:
        return bool(self._event_map.personal_fields(event_name))

    async def encrypt_payload(
        self,
        event_name: str,
        payload: dict[str, Any],
        owner_id: str | None,
        cache: KeyCache,
    ) -> dict[str, Any]:
        fields = self._event_map.personal_fields(event_name)
        present = [f for f in sorted(fields) if payload.get(f) is not None]
        if not present:
            return dict(payload)
        if not owner_id:
            raise EncryptionError(
                f"Event '{event_name}' carries personal data but no owner_id",
                detail={"event_name": event_name},
            )
        if self._event_map.creates_key(event_name):
            key = await cache.get_or_create(owner_id)
        else:
            key = await cache.get(owner_id)
            if key is None:
                raise EncryptionError(
                    f"No encryption key for owner '{owner_id}' and '{event_name}' may not create one",
                    detail={"event_name": event_name, "owner_id": owner_id},
                )
        sealed = dict(payload)
        for field in present:
            sealed[field] = self._cipher.encrypt(key, payload[field], field.encode())
        return sealed

    async def decrypt_payload(
        self,
        event_name: str,
        payload: dict[str, Any],
        owner_id: str | None,
        cache: KeyCache,
    ) -> dict[str, Any]:
        """Return a copy of *payload* with envelopes opened.

        Every envelope-shaped value is opened, so fields renamed by a later
        schema version still decrypt; other values are passed through.  A
        missing key raises :class:`SubjectErasedError`.
        """
        sealed = sorted(k for k, v in payload.items() if is_envelope(v))
        if not sealed:
            return dict(payload)
        if not owner_id:
            raise DecryptionError(
                f"Event '{event_name}' holds encrypted fields but no owner_id",
                detail={"event_name": event_name},
            )
        key = await cache.get(owner_id)
        if key is None:
            raise SubjectErasedError(owner_id)
        opened = dict(payload)
        for field in sealed:
            opened[field] = self._cipher.decrypt(key, payload[field], field.encode())
        return opened

    async def seal_value(self, owner_id: str, value: Any, label: str, cache: KeyCache) -> dict[str, str]:
        """Encrypt a whole value (e.g. snapshot state) under an existing owner key."""
        key = await cache.get(owner_id)
        if key is None:
            raise EncryptionError(
                f"No encryption key for owner '{owner_id}'",
                detail={"owner_id": owner_id, "label": label},
            )
        return self._cipher.encrypt(key, value, label.encode())

    async def open_value(self, owner_id: str, envelope: dict[str, str], label: str, cache: KeyCache) -> Any:
        key = await cache.get(owner_id)
        if key is None:
            raise SubjectErasedError(owner_id)
        return self._cipher.decrypt(key, envelope, label.encode())
