"""
fluxstore – event-sourced persistence engine.

Import path convention::

    from fluxstore.kernel.errors import ConcurrencyConflictError
    from fluxstore.kernel.ddd import DomainEvent
    from fluxstore.application.event_sourcing import EventSourcedAggregate, EventSourcedRepository
    from fluxstore.adapters.sqlalchemy import SQLAlchemyEventStore
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
