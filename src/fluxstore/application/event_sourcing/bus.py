"""Application event sourcing – EventBus for appended events.

The store publishes every successful append here before it commits; a
failing subscriber makes the append roll back.
"""

from __future__ import annotations

import abc
from typing import Iterable, Sequence

from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.observability.logging import get_logger

logger = get_logger(__name__)


class EventSubscriber(abc.ABC):
    """Receives appended events, in ``stream_version`` order per stream."""

    #: Tags this subscriber wants; ``None`` means every event.
    event_names: frozenset[str] | None = None

    @abc.abstractmethod
    async def handle(self, events: Sequence[StoredEvent]) -> None: ...

    def wants(self, event: StoredEvent) -> bool:
        return self.event_names is None or event.event_name in self.event_names


class EventBus(abc.ABC):
    """Port: deliver appended events to subscribers."""

    @abc.abstractmethod
    def subscribe(self, subscriber: EventSubscriber) -> None: ...

    @abc.abstractmethod
    async def publish(self, events: Sequence[StoredEvent]) -> None: ...


class InProcessEventBus(EventBus):
    """In-process bus: calls subscribers one after the other.

    Subscribers run sequentially so a slow or failing one cannot reorder
    delivery relative to ``stream_version``.  The first exception propagates.
    """

    def __init__(self, subscribers: Iterable[EventSubscriber] = ()) -> None:
        self._subscribers: list[EventSubscriber] = list(subscribers)

    def subscribe(self, subscriber: EventSubscriber) -> None:
        self._subscribers.append(subscriber)

    @property
    def subscribers(self) -> tuple[EventSubscriber, ...]:
        return tuple(self._subscribers)

    async def publish(self, events: Sequence[StoredEvent]) -> None:
        for subscriber in self._subscribers:
            selected = [e for e in events if subscriber.wants(e)]
            if not selected:
                continue
            logger.debug(
                "bus.deliver",
                subscriber=type(subscriber).__name__,
                count=len(selected),
            )
            await subscriber.handle(selected)


__all__ = ["EventBus", "EventSubscriber", "InProcessEventBus"]
