"""Wiring – build a SQLAlchemy-backed fluxstore from :class:`FluxStoreSettings`.

Example::

    events = register_registry(EventTypeMap())
    events.register_aggregate(Budget)
    events.register(BudgetCreated, aggregate=Budget, personal_data=("name",), creates_key=True)

    async with await create_fluxstore(settings, events, projections=[BudgetSummary()]) as flux:
        repo = BudgetRepository(flux.store, flux.codec, flux.snapshots, flux.snapshot_policy)
        ...
"""

from __future__ import annotations

import dataclasses
from typing import Any, Iterable

from fluxstore.adapters.sqlalchemy.event_store import SQLAlchemyEventStore
from fluxstore.adapters.sqlalchemy.key_store import SQLAlchemyKeyManager
from fluxstore.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from fluxstore.adapters.sqlalchemy.snapshot_store import SQLAlchemySnapshotStore
from fluxstore.adapters.sqlalchemy.uow import SqlAlchemyUnitOfWork
from fluxstore.application.event_sourcing.bus import InProcessEventBus
from fluxstore.application.event_sourcing.codec import EventCodec
from fluxstore.application.event_sourcing.event_map import EventTypeMap
from fluxstore.application.event_sourcing.snapshot import SnapshotPolicy
from fluxstore.application.projections import (
    Projection,
    ProjectionManager,
    ProjectionRegistry,
    ProjectionSubscriber,
)
from fluxstore.config.settings import FluxStoreSettings
from fluxstore.config.validation import ConfigError
from fluxstore.observability.logging import get_logger
from fluxstore.security.encryption import FieldEncryptor, MasterKeyWrapper

logger = get_logger(__name__)


@dataclasses.dataclass
class FluxStore:
    """Every collaborator of a running event store, built once at startup."""

    settings: FluxStoreSettings
    session_factory: SqlAlchemySessionFactory
    bus: InProcessEventBus
    store: SQLAlchemyEventStore
    snapshots: SQLAlchemySnapshotStore
    snapshot_policy: SnapshotPolicy
    key_manager: SQLAlchemyKeyManager
    codec: EventCodec
    projection_manager: ProjectionManager

    def unit_of_work(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self.session_factory)

    async def aclose(self) -> None:
        await self.session_factory.dispose()

    async def __aenter__(self) -> "FluxStore":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()


async def create_fluxstore(
    settings: FluxStoreSettings,
    event_map: EventTypeMap,
    projections: Iterable[Projection] = (),
    live_projections: bool | None = None,
    create_schema: bool = True,
    **engine_kwargs: Any,
) -> FluxStore:
    """Validate *event_map* and build the SQLAlchemy-backed components.

    Raises :class:`~fluxstore.config.validation.ConfigError` before anything
    touches the database when the event type map is inconsistent.

    *live_projections* feeds projections from the append transaction.  SQLite
    allows a single writer, so a projection session would block on the open
    append; ``None`` enables them on every other dialect and leaves SQLite
    read models to ``projections replay``.  ``True`` on SQLite is a
    :class:`ConfigError`.
    """
    wrapper = MasterKeyWrapper(settings.master_keys) if settings.master_keys else None
    session_factory = SqlAlchemySessionFactory(settings.database_url, **engine_kwargs)
    single_writer = session_factory.engine.dialect.name == "sqlite"
    if live_projections is None:
        live_projections = not single_writer
    elif live_projections and single_writer:
        await session_factory.dispose()
        raise ConfigError(
            "Live projections need a database with concurrent writers; "
            "SQLite would lock on every append. Pass live_projections=False and replay instead.",
            detail={"dialect": session_factory.engine.dialect.name},
        )

    key_manager = SQLAlchemyKeyManager(session_factory, wrapper)
    codec = EventCodec(event_map, FieldEncryptor(key_manager, event_map))
    codec.check()

    registry = ProjectionRegistry(projections)
    bus = InProcessEventBus()
    store = SQLAlchemyEventStore(session_factory, bus=bus, page_size=settings.stream_page_size)
    snapshots = SQLAlchemySnapshotStore(session_factory)

    def uow_factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory)

    manager = ProjectionManager(store, registry, codec, uow_factory, batch_size=settings.replay_batch_size)
    if live_projections:
        for projection in registry:
            bus.subscribe(ProjectionSubscriber(projection, codec, uow_factory))

    if create_schema:
        await session_factory.create_schema(
            SQLAlchemyEventStore, SQLAlchemySnapshotStore, SQLAlchemyKeyManager, *(type(p) for p in registry)
        )

    logger.info(
        "fluxstore.started",
        events=len(event_map.registered_events()),
        projections=registry.names(),
        live_projections=live_projections,
        key_wrapping=wrapper is not None,
    )
    return FluxStore(
        settings=settings,
        session_factory=session_factory,
        bus=bus,
        store=store,
        snapshots=snapshots,
        snapshot_policy=SnapshotPolicy(settings.snapshot_frequency),
        key_manager=key_manager,
        codec=codec,
        projection_manager=manager,
    )


__all__ = ["FluxStore", "create_fluxstore"]
