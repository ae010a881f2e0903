"""Application projections – Projection base class and ProjectionStatus."""

from __future__ import annotations

import abc
import dataclasses
from datetime import datetime
from typing import Any, Awaitable, Callable, ClassVar

from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.kernel.ddd.domain_event import DomainEvent
from fluxstore.kernel.ddd.unit_of_work import UnitOfWork
from fluxstore.kernel.errors import UnknownEventTypeError
from fluxstore.kernel.time.clock import ensure_utc

Handler = Callable[[DomainEvent, StoredEvent, UnitOfWork], Awaitable[None]]


@dataclasses.dataclass(frozen=True)
class ProjectionStatus:
    """Operational view of a read model; used for health checks only."""

    name: str
    table_name: str
    row_count: int
    last_updated: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "table_name": self.table_name,
            "row_count": self.row_count,
            "last_updated": ensure_utc(self.last_updated).isoformat() if self.last_updated else None,
        }


class Projection(abc.ABC):
    """A read model derived from (a subset of) the event log.

    Subclasses name themselves, declare the table they own and return an
    explicit ``event_name -> handler`` table from :meth:`_handlers`.  Handlers
    must be idempotent upserts keyed by the event's target id: both the live
    subscriber and :class:`ProjectionManager` replays may deliver an event
    more than once.
    """

    name: ClassVar[str] = ""
    aggregate_type: ClassVar[str | None] = None
    table_name: ClassVar[str] = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("name"):
            cls.name = cls.__name__

    @abc.abstractmethod
    def _handlers(self) -> dict[str, Handler]:
        """Return the ``event_name -> handler`` table."""

    @property
    def event_names(self) -> frozenset[str]:
        return frozenset(self._handlers())

    async def handle(self, event: DomainEvent, record: StoredEvent, uow: UnitOfWork) -> None:
        handler = self._handlers().get(record.event_name)
        if handler is None:
            raise UnknownEventTypeError(record.event_name, target=self.name)
        await handler(event, record, uow)

    @abc.abstractmethod
    async def reset(self, uow: UnitOfWork) -> None:
        """Remove every row of the read model."""

    @abc.abstractmethod
    async def status(self, uow: UnitOfWork) -> ProjectionStatus: ...


__all__ = ["Handler", "Projection", "ProjectionStatus"]
