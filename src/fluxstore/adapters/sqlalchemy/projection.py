"""SQLAlchemy adapter – TableProjection (read model in one table)."""
from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import Column, DateTime, MetaData, String, Table, delete, func, insert, select, update

from fluxstore.application.projections.base import Projection, ProjectionStatus
from fluxstore.kernel.ddd.unit_of_work import UnitOfWork
from fluxstore.kernel.time.clock import ensure_utc

UPDATED_AT = "updated_at"


def build_projection_table(
    name: str,
    *columns: Column,
    metadata: MetaData | None = None,
    key_column: str = "id",
) -> Table:
    """Read-model table keyed by *key_column*, with an ``updated_at`` column."""
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column(key_column, String(64), primary_key=True),
        *columns,
        Column(UPDATED_AT, DateTime(timezone=True), nullable=False),
    )


class TableProjection(Projection):
    """Projection whose read model is a single SQLAlchemy table.

    Handlers write through the ``session`` of the
    :class:`~fluxstore.adapters.sqlalchemy.uow.SqlAlchemyUnitOfWork` they
    receive, using :meth:`upsert` and :meth:`delete_row`.  ``updated_at`` is
    set from the event's ``occurred_on``, never from the wall clock, so
    applying the same event twice leaves the row unchanged.

    Example::

        class BudgetSummary(TableProjection):
            name = "budget_summary"
            table = build_projection_table("budget_summary", Column("name", String(200)))

            def _handlers(self):
                return {BudgetRenamed.EVENT_NAME: self._on_renamed}

            async def _on_renamed(self, event, record, uow):
                await self.upsert(uow.session, event.aggregate_id, {"name": event.name}, record.occurred_on)
    """

    table: ClassVar[Table]
    key_column: ClassVar[str] = "id"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table = cls.__dict__.get("table")
        if table is not None and not cls.__dict__.get("table_name"):
            cls.table_name = table.name

    @classmethod
    async def create_table(cls, bind: Any) -> None:
        async with bind.begin() as conn:
            await conn.run_sync(cls.table.create, checkfirst=True)

    # ------------------------------------------------------------------
    # Row helpers for handlers
    # ------------------------------------------------------------------

    async def upsert(self, session: Any, key: str, values: dict[str, Any], updated_at: datetime) -> None:
        """Update the row keyed by *key*, inserting it when it does not exist yet."""
        t = self.table
        row = {**values, UPDATED_AT: ensure_utc(updated_at)}
        result = await session.execute(update(t).where(t.c[self.key_column] == key).values(**row))
        if result.rowcount == 0:
            await session.execute(insert(t).values({self.key_column: key, **row}))

    async def delete_row(self, session: Any, key: str) -> None:
        t = self.table
        await session.execute(delete(t).where(t.c[self.key_column] == key))

    # ------------------------------------------------------------------
    # Projection contract
    # ------------------------------------------------------------------

    async def reset(self, uow: UnitOfWork) -> None:
        await self._session(uow).execute(delete(self.table))

    async def status(self, uow: UnitOfWork) -> ProjectionStatus:
        t = self.table
        stmt = select(func.count(), func.max(t.c[UPDATED_AT])).select_from(t)
        count, last = (await self._session(uow).execute(stmt)).one()
        return ProjectionStatus(
            name=self.name,
            table_name=self.table_name,
            row_count=count or 0,
            last_updated=ensure_utc(last) if last is not None else None,
        )

    @staticmethod
    def _session(uow: UnitOfWork) -> Any:
        session = getattr(uow, "session", None)
        if session is None:
            raise TypeError(f"{type(uow).__name__} has no open SQLAlchemy session")
        return session


__all__ = ["TableProjection", "UPDATED_AT", "build_projection_table"]
