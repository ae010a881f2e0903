"""DDD building blocks — public re-export surface."""

from fluxstore.kernel.ddd.aggregate import AggregateRoot, EventRecorder
from fluxstore.kernel.ddd.domain_event import ENVELOPE_FIELDS, DomainEvent
from fluxstore.kernel.ddd.unit_of_work import UnitOfWork

__all__ = [
    "ENVELOPE_FIELDS",
    "AggregateRoot",
    "DomainEvent",
    "EventRecorder",
    "UnitOfWork",
]
