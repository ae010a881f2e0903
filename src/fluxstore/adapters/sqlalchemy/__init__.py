"""SQLAlchemy adapter – event store, snapshots, keys, projections, UoW."""
from fluxstore.adapters.sqlalchemy.event_store import SQLAlchemyEventStore, build_event_table
from fluxstore.adapters.sqlalchemy.key_store import SQLAlchemyKeyManager, build_key_table
from fluxstore.adapters.sqlalchemy.projection import UPDATED_AT, TableProjection, build_projection_table
from fluxstore.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from fluxstore.adapters.sqlalchemy.snapshot_store import SQLAlchemySnapshotStore, build_snapshot_table
from fluxstore.adapters.sqlalchemy.uow import SqlAlchemyUnitOfWork

__all__ = [
    "UPDATED_AT",
    "SQLAlchemyEventStore",
    "SQLAlchemyKeyManager",
    "SQLAlchemySnapshotStore",
    "SqlAlchemySessionFactory",
    "SqlAlchemyUnitOfWork",
    "TableProjection",
    "build_event_table",
    "build_key_table",
    "build_projection_table",
    "build_snapshot_table",
]
