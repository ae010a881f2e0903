"""Application projections – ProjectionManager (replay / reset / status)."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from fluxstore.application.event_sourcing.codec import EventCodec
from fluxstore.application.event_sourcing.store import DEFAULT_READ_LIMIT, EventStore
from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.application.projections.base import Projection, ProjectionStatus
from fluxstore.application.projections.registry import ProjectionRegistry
from fluxstore.kernel.ddd.unit_of_work import UnitOfWork
from fluxstore.kernel.errors import ReplayBatchError, SubjectErasedError
from fluxstore.kernel.time.clock import ensure_utc
from fluxstore.observability.logging import get_logger
from fluxstore.security.encryption.keys import KeyCache

logger = get_logger(__name__)

UnitOfWorkFactory = Callable[[], UnitOfWork]


class ProjectionManager:
    """Builds and repairs read models from the global event log.

    A replay walks the log in fixed-size batches ordered by global position,
    restricted to the projection's event names, and applies every batch in
    its own unit of work.  A failing batch is rolled back on its own and
    reported with its starting offset; batches before it stay committed, so
    the replay can be resumed with ``replay(name, from_date, offset=...)``.

    Events whose owner has been erased cannot be decrypted and are skipped.
    """

    def __init__(
        self,
        store: EventStore,
        registry: ProjectionRegistry,
        codec: EventCodec,
        uow_factory: UnitOfWorkFactory,
        batch_size: int = DEFAULT_READ_LIMIT,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._store = store
        self._registry = registry
        self._codec = codec
        self._uow_factory = uow_factory
        self._batch_size = batch_size

    @property
    def registry(self) -> ProjectionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    async def replay(
        self,
        name: str,
        from_date: datetime | None = None,
        batch_size: int | None = None,
        reset_first: bool = False,
        offset: int = 0,
    ) -> int:
        """Replay the log into projection *name*; returns the number of events applied.

        Without *from_date* the read model is truncated first (full rebuild),
        unless the call resumes a rebuild from a non-zero *offset*.
        Resetting and resuming are exclusive: *reset_first* with a non-zero
        *offset* raises :class:`ValueError`.
        """
        projection = self._registry.get(name)
        if reset_first and offset:
            raise ValueError("reset_first cannot be combined with a non-zero offset")
        size = batch_size or self._batch_size
        if reset_first or (from_date is None and offset == 0):
            await self.reset(name)
        since = ensure_utc(from_date) if from_date is not None else None
        names = projection.event_names
        applied = 0
        logger.info(
            "projection.replay_started",
            projection=name,
            from_date=since.isoformat() if since else None,
            batch_size=size,
            offset=offset,
        )
        while True:
            batch = await self._store.read_all(event_names=names, from_date=since, offset=offset, limit=size)
            if not batch:
                break
            applied += await self._apply_batch(projection, batch, offset)
            logger.debug("projection.batch_committed", projection=name, offset=offset, size=len(batch))
            offset += len(batch)
            if len(batch) < size:
                break
        logger.info("projection.replay_finished", projection=name, applied=applied)
        return applied

    async def replay_all(
        self,
        from_date: datetime | None = None,
        batch_size: int | None = None,
        reset_first: bool = False,
    ) -> dict[str, int]:
        return {
            projection.name: await self.replay(projection.name, from_date, batch_size, reset_first)
            for projection in self._registry
        }

    async def _apply_batch(self, projection: Projection, batch: list[StoredEvent], offset: int) -> int:
        cache = self._codec.new_cache()
        applied = 0
        record = batch[0]
        try:
            async with self._uow_factory() as uow:
                for record in batch:
                    if await self._deliver(projection, record, uow, cache):
                        applied += 1
        except Exception as exc:
            logger.error(
                "projection.batch_failed",
                projection=projection.name,
                offset=offset,
                position=record.position,
                error=repr(exc),
            )
            raise ReplayBatchError(projection.name, offset, record.position, cause=exc) from exc
        return applied

    async def _deliver(
        self,
        projection: Projection,
        record: StoredEvent,
        uow: UnitOfWork,
        cache: KeyCache | None,
    ) -> bool:
        try:
            event = await self._codec.decode(record, cache)
        except SubjectErasedError:
            logger.info(
                "projection.event_skipped",
                projection=projection.name,
                position=record.position,
                owner_id=record.owner_id,
                reason="subject_erased",
            )
            return False
        await projection.handle(event, record, uow)
        return True

    # ------------------------------------------------------------------
    # Reset / status
    # ------------------------------------------------------------------

    async def reset(self, name: str) -> None:
        projection = self._registry.get(name)
        async with self._uow_factory() as uow:
            await projection.reset(uow)
        logger.info("projection.reset", projection=name)

    async def reset_all(self) -> list[str]:
        names = self._registry.names()
        for name in names:
            await self.reset(name)
        return names

    async def status(self, name: str) -> ProjectionStatus:
        projection = self._registry.get(name)
        async with self._uow_factory() as uow:
            return await projection.status(uow)

    async def status_all(self) -> list[ProjectionStatus]:
        return [await self.status(name) for name in self._registry.names()]


__all__ = ["ProjectionManager", "UnitOfWorkFactory"]
