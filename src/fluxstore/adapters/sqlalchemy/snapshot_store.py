"""SQLAlchemy adapter – SQLAlchemySnapshotStore."""
from __future__ import annotations

from typing import Any, Callable

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    insert,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fluxstore.application.event_sourcing.snapshot import SnapshotRecord, SnapshotStore
from fluxstore.kernel.errors import StorageUnavailableError
from fluxstore.kernel.time.clock import ensure_utc


def build_snapshot_table(metadata: MetaData, name: str = "aggregate_snapshots") -> Table:
    return Table(
        name,
        metadata,
        Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        Column("aggregate_id", String(64), nullable=False, index=True),
        Column("aggregate_type", String(128), nullable=False),
        Column("version", Integer, nullable=False),
        Column("data", JSON, nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=False),
        UniqueConstraint("aggregate_id", "version", name=f"uq_{name}_aggregate_version"),
    )


class SQLAlchemySnapshotStore(SnapshotStore):
    """Snapshots in an ``aggregate_snapshots`` table, one row per (aggregate, version)."""

    TABLE_NAME = "aggregate_snapshots"

    def __init__(self, session_factory: Callable[[], Any], table_name: str = TABLE_NAME) -> None:
        self._session_factory = session_factory
        self._table = build_snapshot_table(MetaData(), table_name)

    @classmethod
    async def create_table(cls, bind: Any, table_name: str = TABLE_NAME) -> None:
        meta = MetaData()
        build_snapshot_table(meta, table_name)
        async with bind.begin() as conn:
            await conn.run_sync(meta.create_all)

    async def save(self, record: SnapshotRecord) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(
                        insert(self._table).values(
                            aggregate_id=record.aggregate_id,
                            aggregate_type=record.aggregate_type,
                            version=record.version,
                            data=record.data,
                            created_at=ensure_utc(record.created_at),
                        )
                    )
        except IntegrityError:
            # a snapshot at this version already exists; state at a version is fixed
            return
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Snapshot save failed", cause=exc) from exc

    async def latest(
        self,
        aggregate_id: str,
        aggregate_type: str,
        max_version: int | None = None,
    ) -> SnapshotRecord | None:
        t = self._table
        stmt = (
            select(t)
            .where(t.c.aggregate_id == aggregate_id)
            .where(t.c.aggregate_type == aggregate_type)
            .order_by(t.c.version.desc())
            .limit(1)
        )
        if max_version is not None:
            stmt = stmt.where(t.c.version <= max_version)
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).first()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Snapshot read failed", cause=exc) from exc
        if row is None:
            return None
        return SnapshotRecord(
            aggregate_id=row.aggregate_id,
            aggregate_type=row.aggregate_type,
            version=row.version,
            data=dict(row.data),
            created_at=ensure_utc(row.created_at),
        )


__all__ = ["SQLAlchemySnapshotStore", "build_snapshot_table"]
