"""Application — Event Sourcing."""

from fluxstore.application.event_sourcing.aggregate import EventSourcedAggregate
from fluxstore.application.event_sourcing.bus import EventBus, EventSubscriber, InProcessEventBus
from fluxstore.application.event_sourcing.codec import EventCodec
from fluxstore.application.event_sourcing.event_map import EventSchema, EventTypeMap
from fluxstore.application.event_sourcing.repository import EventSourcedRepository
from fluxstore.application.event_sourcing.snapshot import (
    InMemorySnapshotStore,
    SnapshotPolicy,
    SnapshotRecord,
    SnapshotStore,
)
from fluxstore.application.event_sourcing.store import Commit, EventStore, InMemoryEventStore
from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.application.event_sourcing.stream import EventStream, EventStreamCursor, MappedEventStream

__all__ = [
    "Commit",
    "EventBus",
    "EventCodec",
    "EventSchema",
    "EventSourcedAggregate",
    "EventSourcedRepository",
    "EventStore",
    "EventStream",
    "EventStreamCursor",
    "EventSubscriber",
    "EventTypeMap",
    "InMemoryEventStore",
    "InMemorySnapshotStore",
    "InProcessEventBus",
    "MappedEventStream",
    "SnapshotPolicy",
    "SnapshotRecord",
    "SnapshotStore",
    "StoredEvent",
]
