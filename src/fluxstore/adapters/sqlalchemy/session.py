"""SQLAlchemy adapter – SqlAlchemySessionFactory."""
from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


class SqlAlchemySessionFactory:
    """Creates async SQLAlchemy sessions from an engine URL.

    Instances are zero-argument callables, so they can be handed directly to
    the stores, key manager and unit of work as their ``session_factory``.
    """

    def __init__(self, database_url: str, **engine_kwargs: Any) -> None:
        self._engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    def __call__(self) -> AsyncSession:
        return self._session_factory()

    async def create_schema(self, *owners: Any) -> None:
        """Run ``create_table(engine)`` on every store / projection class given."""
        for owner in owners:
            await owner.create_table(self._engine)

    async def dispose(self) -> None:
        await self._engine.dispose()


__all__ = ["SqlAlchemySessionFactory"]
