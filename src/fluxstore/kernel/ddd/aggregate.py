"""AggregateRoot — identity, persisted version and an embedded event recorder."""

from __future__ import annotations

from fluxstore.kernel.ddd.domain_event import DomainEvent


class EventRecorder:
    """Holds events raised by an aggregate that are not yet persisted.

    Composed into :class:`AggregateRoot` rather than mixed in, so the
    pending-events state is a value the aggregate owns.
    """

    __slots__ = ("_events",)

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []

    def raise_event(self, event: DomainEvent) -> None:
        self._events.append(event)

    def drain(self) -> list[DomainEvent]:
        """Return and clear the pending events."""
        events, self._events = self._events, []
        return events

    @property
    def events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)


class AggregateRoot:
    """Aggregate root — equality by id, tracks its persisted stream version.

    ``version`` is the ``stream_version`` of the last persisted event folded
    into this instance.  Events raised since then sit in :attr:`recorder`.
    """

    def __init__(self, id: str) -> None:  # noqa: A002
        self._id = str(id)
        self._version = 0
        self._recorder = EventRecorder()

    @property
    def id(self) -> str:
        return self._id

    @property
    def version(self) -> int:
        return self._version

    @property
    def recorder(self) -> EventRecorder:
        return self._recorder

    @property
    def pending_events(self) -> tuple[DomainEvent, ...]:
        return self._recorder.events

    def mark_committed(self, count: int | None = None) -> list[DomainEvent]:
        """Drain the recorder after a successful append and advance ``version``."""
        events = self._recorder.drain()
        self._version += len(events) if count is None else count
        return events

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:  # pragma: no cover
        return f"{type(self).__name__}(id={self._id!r}, version={self._version})"


__all__ = ["AggregateRoot", "EventRecorder"]
