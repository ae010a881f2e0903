"""Application event sourcing – EventSourcedAggregate base class."""

from __future__ import annotations

import abc
from typing import Any, AsyncIterable, Callable, ClassVar, Iterable, TypeVar

from fluxstore.kernel.ddd.aggregate import AggregateRoot
from fluxstore.kernel.ddd.domain_event import DomainEvent
from fluxstore.kernel.errors import UnknownEventTypeError

A = TypeVar("A", bound="EventSourcedAggregate")

Applier = Callable[[Any], None]


class EventSourcedAggregate(AggregateRoot, abc.ABC):
    """Aggregate root whose state is the fold of its event stream.

    Subclasses set ``aggregate_type`` and return an explicit tag → handler
    table from :meth:`_appliers`.  An event whose tag is not in the table
    raises :class:`~fluxstore.kernel.errors.UnknownEventTypeError`; it is
    never ignored.

    Example::

        class Budget(EventSourcedAggregate):
            aggregate_type = "budget"

            def __init__(self, aggregate_id: str) -> None:
                super().__init__(aggregate_id)
                self.name = ""

            def _appliers(self):
                return {BudgetRenamed.EVENT_NAME: self._on_renamed}

            def rename(self, name: str) -> None:
                self.raise_event(BudgetRenamed(aggregate_id=self.id, name=name))

            def _on_renamed(self, event: BudgetRenamed) -> None:
                self.name = event.name
    """

    aggregate_type: ClassVar[str] = ""

    def __init__(self, aggregate_id: str) -> None:
        super().__init__(aggregate_id)
        self._dispatch: dict[str, Applier] | None = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("aggregate_type"):
            cls.aggregate_type = cls.__name__

    @abc.abstractmethod
    def _appliers(self) -> dict[str, Applier]:
        """Return the ``event_name -> handler`` table for this aggregate."""

    @classmethod
    def handled_events(cls) -> frozenset[str]:
        """Event tags this aggregate type can apply."""
        return frozenset(cls("__introspect__")._appliers())

    # ------------------------------------------------------------------
    # Folding
    # ------------------------------------------------------------------

    def apply_event(self, event: DomainEvent) -> None:
        """Mutate state from a single event; must not raise new events."""
        if self._dispatch is None:
            self._dispatch = self._appliers()
        handler = self._dispatch.get(event.event_name)
        if handler is None:
            raise UnknownEventTypeError(event.event_name, target=self.aggregate_type)
        handler(event)

    def raise_event(self, event: DomainEvent) -> None:
        """Apply *event* now, then record it for the next save.

        State is mutated before recording so callers can check invariants
        against the post-event state before raising further events.
        """
        self.apply_event(event)
        self._recorder.raise_event(event)

    @classmethod
    def reconstitute(
        cls: type[A],
        aggregate_id: str,
        events: Iterable[tuple[int, DomainEvent]],
    ) -> A:
        """Fold ``(stream_version, event)`` pairs into a fresh aggregate."""
        aggregate = cls(aggregate_id)
        for version, event in events:
            aggregate.replay(version, event)
        return aggregate

    @classmethod
    async def reconstitute_async(
        cls: type[A],
        aggregate_id: str,
        events: AsyncIterable[tuple[int, DomainEvent]],
    ) -> A:
        aggregate = cls(aggregate_id)
        async for version, event in events:
            aggregate.replay(version, event)
        return aggregate

    def replay(self, stream_version: int, event: DomainEvent) -> None:
        """Apply a persisted event and move ``version`` to its ``stream_version``."""
        self.apply_event(event)
        self._version = stream_version

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @classmethod
    def supports_snapshots(cls) -> bool:
        return cls.snapshot_state is not EventSourcedAggregate.snapshot_state

    def snapshot_state(self) -> dict[str, Any]:
        """Return JSON-serialisable state; override to enable snapshots."""
        raise NotImplementedError(f"{type(self).__name__} does not support snapshots")

    def restore_state(self, data: dict[str, Any]) -> None:
        """Inverse of :meth:`snapshot_state`."""
        raise NotImplementedError(f"{type(self).__name__} does not support snapshots")

    def snapshot_owner(self) -> str | None:
        """Owner whose key seals snapshot state; ``None`` stores it in clear."""
        return None

    def restore(self, version: int, data: dict[str, Any]) -> None:
        self.restore_state(data)
        self._version = version


__all__ = ["Applier", "EventSourcedAggregate"]
