"""SQLAlchemy adapter – SQLAlchemyEventStore."""
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any, Callable, Collection, Sequence

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    func,
    insert,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fluxstore.application.event_sourcing.bus import EventBus
from fluxstore.application.event_sourcing.store import DEFAULT_READ_LIMIT, Commit, EventStore
from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.application.event_sourcing.stream import DEFAULT_PAGE_SIZE
from fluxstore.kernel.errors import ConcurrencyConflictError, StorageUnavailableError
from fluxstore.kernel.time.clock import ensure_utc
from fluxstore.observability.logging import get_logger

logger = get_logger(__name__)


def build_event_table(metadata: MetaData, name: str = "event_store") -> Table:
    """Describe the append-only event log table."""
    return Table(
        name,
        metadata,
        Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        Column("stream_id", String(64), nullable=False),
        Column("stream_name", String(128), nullable=False),
        Column("event_name", String(128), nullable=False),
        Column("event_version", Integer, nullable=False, default=1),
        Column("stream_version", Integer, nullable=False),
        Column("payload", JSON, nullable=False),
        Column("occurred_on", DateTime(timezone=True), nullable=False),
        Column("request_id", String(64), nullable=True),
        Column("owner_id", String(64), nullable=True),
        Column("meta_data", JSON, nullable=False),
        UniqueConstraint("stream_id", "stream_version", name=f"uq_{name}_stream_version"),
        Index(f"ix_{name}_event_name", "event_name"),
        Index(f"ix_{name}_owner_id", "owner_id"),
        Index(f"ix_{name}_occurred_on", "occurred_on"),
    )


class SQLAlchemyEventStore(EventStore):
    """Append-only SQLAlchemy event store with optimistic concurrency.

    All events live in one table.  The ``(stream_id, stream_version)`` pair
    is declared ``UNIQUE``: when two writers race for the same version the
    database lets exactly one insert through, and the loser's whole
    transaction is rolled back and reported as
    :class:`~fluxstore.kernel.errors.ConcurrencyConflictError`.

    The store **does not** migrate the table.  Call :meth:`create_table` once
    (e.g. at startup or from a migration) before using it.

    Parameters
    ----------
    session_factory:
        Zero-argument callable returning a new
        :class:`~sqlalchemy.ext.asyncio.AsyncSession`; every append and
        every page read uses its own session.
    bus:
        Receives appended events before the transaction commits.
    """

    TABLE_NAME = "event_store"

    def __init__(
        self,
        session_factory: Callable[[], Any],
        bus: EventBus | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        table_name: str = TABLE_NAME,
    ) -> None:
        super().__init__(bus, page_size)
        self._session_factory = session_factory
        self._table = build_event_table(MetaData(), table_name)

    # ------------------------------------------------------------------
    # Schema helpers
    # ------------------------------------------------------------------

    @classmethod
    async def create_table(cls, bind: Any, table_name: str = TABLE_NAME) -> None:
        """Create the event table if it does not exist.

        Parameters
        ----------
        bind:
            An :class:`~sqlalchemy.ext.asyncio.AsyncEngine`.
        """
        meta = MetaData()
        build_event_table(meta, table_name)
        async with bind.begin() as conn:
            await conn.run_sync(meta.create_all)

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def append_batch(self, commits: Sequence[Commit]) -> list[StoredEvent]:
        commits = [c for c in commits if c.events]
        if not commits:
            return []
        current = commits[0]
        stored: list[StoredEvent] = []
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for current in commits:
                        actual = await self._head(session, current.stream_id)
                        if actual != current.expected_version:
                            raise ConcurrencyConflictError(current.stream_id, current.expected_version, actual)
                        known = await self._name_of(session, current.stream_id) if actual else None
                        for event in self._stamp(current, known):
                            result = await session.execute(insert(self._table).values(**self._to_row(event)))
                            stored.append(dataclasses.replace(event, position=result.inserted_primary_key[0]))
                    await self._publish(stored)
        except IntegrityError as exc:
            logger.info(
                "event_store.version_conflict",
                stream_id=current.stream_id,
                expected_version=current.expected_version,
            )
            raise ConcurrencyConflictError(current.stream_id, current.expected_version, cause=exc) from exc
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(f"Append to '{current.stream_id}' failed", cause=exc) from exc
        logger.debug(
            "event_store.appended",
            streams=[c.stream_id for c in commits],
            count=len(stored),
        )
        return stored

    async def _head(self, session: Any, stream_id: str) -> int:
        t = self._table
        stmt = select(func.max(t.c.stream_version)).where(t.c.stream_id == stream_id)
        return (await session.execute(stmt)).scalar() or 0

    async def _name_of(self, session: Any, stream_id: str) -> str | None:
        t = self._table
        stmt = select(t.c.stream_name).where(t.c.stream_id == stream_id).limit(1)
        return (await session.execute(stmt)).scalar()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def _read_page(
        self,
        stream_id: str,
        after_version: int,
        limit: int,
        as_of: datetime | None,
        event_names: frozenset[str] | None,
    ) -> list[StoredEvent]:
        t = self._table
        stmt = (
            select(t)
            .where(t.c.stream_id == stream_id)
            .where(t.c.stream_version > after_version)
            .order_by(t.c.stream_version)
            .limit(limit)
        )
        if as_of is not None:
            stmt = stmt.where(t.c.occurred_on <= ensure_utc(as_of))
        if event_names is not None:
            stmt = stmt.where(t.c.event_name.in_(sorted(event_names)))
        return [self._from_row(row) for row in await self._fetch(stmt)]

    async def current_version(self, stream_id: str) -> int:
        t = self._table
        return await self._scalar(select(func.max(t.c.stream_version)).where(t.c.stream_id == stream_id)) or 0

    async def version_at(self, stream_id: str, as_of: datetime) -> int:
        t = self._table
        stmt = (
            select(func.max(t.c.stream_version))
            .where(t.c.stream_id == stream_id)
            .where(t.c.occurred_on <= ensure_utc(as_of))
        )
        return await self._scalar(stmt) or 0

    async def stream_name(self, stream_id: str) -> str | None:
        t = self._table
        return await self._scalar(select(t.c.stream_name).where(t.c.stream_id == stream_id).limit(1))

    async def read_all(
        self,
        event_names: Collection[str] | None = None,
        from_date: datetime | None = None,
        offset: int = 0,
        limit: int = DEFAULT_READ_LIMIT,
    ) -> list[StoredEvent]:
        t = self._table
        stmt = select(t).order_by(t.c.id).offset(offset).limit(limit)
        if event_names is not None:
            stmt = stmt.where(t.c.event_name.in_(sorted(event_names)))
        if from_date is not None:
            stmt = stmt.where(t.c.occurred_on >= ensure_utc(from_date))
        return [self._from_row(row) for row in await self._fetch(stmt)]

    async def count(self) -> int:
        return await self._scalar(select(func.count()).select_from(self._table)) or 0

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    async def _fetch(self, stmt: Any) -> list[Any]:
        try:
            async with self._session_factory() as session:
                return list((await session.execute(stmt)).all())
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Event store read failed", cause=exc) from exc

    async def _scalar(self, stmt: Any) -> Any:
        try:
            async with self._session_factory() as session:
                return (await session.execute(stmt)).scalar()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Event store read failed", cause=exc) from exc

    @staticmethod
    def _to_row(event: StoredEvent) -> dict[str, Any]:
        return {
            "stream_id": event.stream_id,
            "stream_name": event.stream_name,
            "event_name": event.event_name,
            "event_version": event.event_version,
            "stream_version": event.stream_version,
            "payload": event.payload,
            "occurred_on": ensure_utc(event.occurred_on),
            "request_id": event.request_id,
            "owner_id": event.owner_id,
            "meta_data": event.meta_data,
        }

    @staticmethod
    def _from_row(row: Any) -> StoredEvent:
        return StoredEvent(
            stream_id=row.stream_id,
            stream_name=row.stream_name,
            event_name=row.event_name,
            payload=dict(row.payload or {}),
            stream_version=row.stream_version,
            event_version=row.event_version,
            occurred_on=ensure_utc(row.occurred_on),
            request_id=row.request_id,
            owner_id=row.owner_id,
            meta_data=dict(row.meta_data or {}),
            position=row.id,
        )


__all__ = ["SQLAlchemyEventStore", "build_event_table"]
