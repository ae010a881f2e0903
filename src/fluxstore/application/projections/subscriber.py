"""Application projections – ProjectionSubscriber (live delivery)."""

from __future__ import annotations

from typing import Sequence

from fluxstore.application.event_sourcing.bus import EventSubscriber
from fluxstore.application.event_sourcing.codec import EventCodec
from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.application.projections.base import Projection
from fluxstore.application.projections.manager import UnitOfWorkFactory
from fluxstore.kernel.errors import SubjectErasedError
from fluxstore.observability.logging import get_logger

logger = get_logger(__name__)


class ProjectionSubscriber(EventSubscriber):
    """Feeds freshly appended events to one projection.

    Each delivery runs in its own unit of work.  An exception propagates to
    the bus, which makes the append roll back.
    """

    def __init__(self, projection: Projection, codec: EventCodec, uow_factory: UnitOfWorkFactory) -> None:
        self._projection = projection
        self._codec = codec
        self._uow_factory = uow_factory
        self.event_names = projection.event_names

    async def handle(self, events: Sequence[StoredEvent]) -> None:
        cache = self._codec.new_cache()
        async with self._uow_factory() as uow:
            for record in events:
                try:
                    event = await self._codec.decode(record, cache)
                except SubjectErasedError:
                    logger.info(
                        "projection.event_skipped",
                        projection=self._projection.name,
                        stream_id=record.stream_id,
                        reason="subject_erased",
                    )
                    continue
                await self._projection.handle(event, record, uow)


__all__ = ["ProjectionSubscriber"]
