"""Security encryption – KeyManager port, InMemoryKeyManager and KeyCache."""
from __future__ import annotations

import abc
import os

from fluxstore.observability.logging import get_logger

__all__ = ["KEY_SIZE", "InMemoryKeyManager", "KeyCache", "KeyManager"]

logger = get_logger(__name__)

#: AES-256 key length in bytes.
KEY_SIZE = 32


class KeyManager(abc.ABC):
    """Port: one symmetric data key per owner (data subject).

    Deleting a key is crypto-shredding: every field ever encrypted under it
    becomes unrecoverable while the event rows themselves stay in the log.
    """

    @abc.abstractmethod
    async def get_key(self, owner_id: str) -> bytes | None: ...

    @abc.abstractmethod
    async def generate_key(self, owner_id: str) -> bytes:
        """Create and store a new key; only for an owner's first personal-data event."""

    @abc.abstractmethod
    async def delete_key(self, owner_id: str) -> bool:
        """Destroy the owner's key; returns ``False`` if there was none."""

    @staticmethod
    def new_key_material() -> bytes:
        return os.urandom(KEY_SIZE)


class InMemoryKeyManager(KeyManager):
    """Dict-backed :class:`KeyManager` for tests and local development."""

    def __init__(self) -> None:
        self._keys: dict[str, bytes] = {}

    async def get_key(self, owner_id: str) -> bytes | None:
        return self._keys.get(owner_id)

    async def generate_key(self, owner_id: str) -> bytes:
        if owner_id in self._keys:
            return self._keys[owner_id]
        key = self.new_key_material()
        self._keys[owner_id] = key
        logger.info("encryption.key_generated", owner_id=owner_id)
        return key

    async def delete_key(self, owner_id: str) -> bool:
        existed = self._keys.pop(owner_id, None) is not None
        logger.info("encryption.key_deleted", owner_id=owner_id, existed=existed)
        return existed

    def __len__(self) -> int:
        return len(self._keys)


class KeyCache:
    """Per-operation memo of owner keys.

    Create one per logical operation (a save, a load, a replay batch) and
    pass it down the call chain; it is never shared between operations, so
    a deleted key cannot survive in a cache.  Misses are cached too, so an
    erased owner costs one lookup per operation.
    """

    def __init__(self, key_manager: KeyManager) -> None:
        self._key_manager = key_manager
        self._keys: dict[str, bytes | None] = {}

    async def get(self, owner_id: str) -> bytes | None:
        if owner_id not in self._keys:
            self._keys[owner_id] = await self._key_manager.get_key(owner_id)
        return self._keys[owner_id]

    async def get_or_create(self, owner_id: str) -> bytes:
        key = await self.get(owner_id)
        if key is None:
            key = await self._key_manager.generate_key(owner_id)
            self._keys[owner_id] = key
        return key

    def evict(self, owner_id: str) -> None:
        self._keys.pop(owner_id, None)

    def clear(self) -> None:
        self._keys.clear()

    def __contains__(self, owner_id: object) -> bool:
        return owner_id in self._keys
