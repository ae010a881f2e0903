"""SQLAlchemy adapter – SQLAlchemyKeyManager."""
from __future__ import annotations

import base64
from typing import Any, Callable

from sqlalchemy import Boolean, Column, DateTime, MetaData, String, Table, Text, delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fluxstore.kernel.errors import StorageUnavailableError
from fluxstore.kernel.time.clock import utc_now
from fluxstore.observability.logging import get_logger
from fluxstore.security.encryption.fernet import MasterKeyWrapper
from fluxstore.security.encryption.keys import KeyManager

logger = get_logger(__name__)


def build_key_table(metadata: MetaData, name: str = "encryption_keys") -> Table:
    return Table(
        name,
        metadata,
        Column("owner_id", String(64), primary_key=True),
        Column("key_material", Text, nullable=False),
        Column("wrapped", Boolean, nullable=False, default=False),
        Column("created_at", DateTime(timezone=True), nullable=False),
    )


class SQLAlchemyKeyManager(KeyManager):
    """Owner data keys in an ``encryption_keys`` table.

    With a :class:`MasterKeyWrapper` the key material is stored as a Fernet
    token; without one it is stored as base64.  Deleting the row is the
    crypto-shredding step.
    """

    TABLE_NAME = "encryption_keys"

    def __init__(
        self,
        session_factory: Callable[[], Any],
        wrapper: MasterKeyWrapper | None = None,
        table_name: str = TABLE_NAME,
    ) -> None:
        self._session_factory = session_factory
        self._wrapper = wrapper
        self._table = build_key_table(MetaData(), table_name)

    @classmethod
    async def create_table(cls, bind: Any, table_name: str = TABLE_NAME) -> None:
        meta = MetaData()
        build_key_table(meta, table_name)
        async with bind.begin() as conn:
            await conn.run_sync(meta.create_all)

    async def get_key(self, owner_id: str) -> bytes | None:
        t = self._table
        try:
            async with self._session_factory() as session:
                row = (await session.execute(select(t).where(t.c.owner_id == owner_id))).first()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Key lookup failed", cause=exc) from exc
        if row is None:
            return None
        return self._decode(row.key_material, row.wrapped)

    async def generate_key(self, owner_id: str) -> bytes:
        key = self.new_key_material()
        material, wrapped = self._encode(key)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(
                        insert(self._table).values(
                            owner_id=owner_id,
                            key_material=material,
                            wrapped=wrapped,
                            created_at=utc_now(),
                        )
                    )
        except IntegrityError:
            # created concurrently by another writer; use theirs
            existing = await self.get_key(owner_id)
            if existing is None:
                raise
            return existing
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Key creation failed", cause=exc) from exc
        logger.info("encryption.key_generated", owner_id=owner_id, wrapped=wrapped)
        return key

    async def delete_key(self, owner_id: str) -> bool:
        t = self._table
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(delete(t).where(t.c.owner_id == owner_id))
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Key deletion failed", cause=exc) from exc
        existed = result.rowcount > 0
        logger.info("encryption.key_deleted", owner_id=owner_id, existed=existed)
        return existed

    async def rewrap(self, wrapper: MasterKeyWrapper) -> int:
        """Re-wrap every stored key under the newest master key of *wrapper*.

        *wrapper* must also hold the old master key(s) so existing tokens
        can be opened.  Plain (unwrapped) keys get wrapped.  Returns the
        number of rows rewritten; subsequent calls use *wrapper*.
        """
        t = self._table
        count = 0
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    rows = (await session.execute(select(t))).all()
                    for row in rows:
                        if row.wrapped:
                            material = wrapper.rotate(row.key_material)
                        else:
                            material = wrapper.wrap(base64.b64decode(row.key_material))
                        await session.execute(
                            update(t).where(t.c.owner_id == row.owner_id).values(key_material=material, wrapped=True)
                        )
                        count += 1
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Key re-wrapping failed", cause=exc) from exc
        self._wrapper = wrapper
        logger.info("encryption.keys_rewrapped", count=count)
        return count

    def _encode(self, key: bytes) -> tuple[str, bool]:
        if self._wrapper is not None:
            return self._wrapper.wrap(key), True
        return base64.b64encode(key).decode(), False

    def _decode(self, material: str, wrapped: bool) -> bytes:
        if wrapped:
            if self._wrapper is None:
                raise StorageUnavailableError("Stored key is wrapped but no master key is configured")
            return self._wrapper.unwrap(material)
        return base64.b64decode(material)


__all__ = ["SQLAlchemyKeyManager", "build_key_table"]
