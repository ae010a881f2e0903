"""Application projections – read models built from the event log."""
from fluxstore.application.projections.base import Handler, Projection, ProjectionStatus
from fluxstore.application.projections.manager import ProjectionManager, UnitOfWorkFactory
from fluxstore.application.projections.registry import ProjectionRegistry
from fluxstore.application.projections.subscriber import ProjectionSubscriber

__all__ = [
    "Handler",
    "Projection",
    "ProjectionManager",
    "ProjectionRegistry",
    "ProjectionStatus",
    "ProjectionSubscriber",
    "UnitOfWorkFactory",
]
