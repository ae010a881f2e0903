"""Application event sourcing – EventSourcedRepository."""

from __future__ import annotations

import abc
import inspect
from datetime import datetime
from typing import Any, Awaitable, Callable, Collection, Generic, Iterable, TypeVar

from fluxstore.application.event_sourcing.aggregate import EventSourcedAggregate
from fluxstore.application.event_sourcing.codec import EventCodec
from fluxstore.application.event_sourcing.snapshot import SnapshotPolicy, SnapshotRecord, SnapshotStore
from fluxstore.application.event_sourcing.store import Commit, EventStore
from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.application.event_sourcing.stream import MappedEventStream
from fluxstore.kernel.ddd.domain_event import DomainEvent
from fluxstore.kernel.errors import DecryptionError, StreamEmptyError, StreamNotFoundError
from fluxstore.observability.logging import get_logger
from fluxstore.resilience.retry import RetryPolicy
from fluxstore.security.encryption.keys import KeyCache

T = TypeVar("T", bound=EventSourcedAggregate)

logger = get_logger(__name__)


class EventSourcedRepository(Generic[T], abc.ABC):
    """Generic repository for event-sourced aggregates.

    Subclasses implement :meth:`_aggregate_class`; override
    :meth:`_create_empty` when the aggregate needs more than its id.

    Example::

        class BudgetRepository(EventSourcedRepository[Budget]):
            def _aggregate_class(self) -> type[Budget]:
                return Budget

        repo = BudgetRepository(store, codec, snapshots=InMemorySnapshotStore())
        budget = await repo.load(budget_id)
        budget.rename("Groceries")
        await repo.save(budget)

    Every read and write opens its own :class:`KeyCache`, so a key deleted
    between two operations is never served from memory.
    """

    def __init__(
        self,
        store: EventStore,
        codec: EventCodec,
        snapshots: SnapshotStore | None = None,
        policy: SnapshotPolicy | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._store = store
        self._codec = codec
        self._snapshots = snapshots
        self._policy = policy or SnapshotPolicy()
        self._retry = retry or RetryPolicy()

    @abc.abstractmethod
    def _aggregate_class(self) -> type[T]:
        """Return the concrete aggregate type."""

    def _create_empty(self, agg_id: str) -> T:
        """Return a blank aggregate instance with *agg_id*."""
        return self._aggregate_class()(agg_id)

    @property
    def store(self) -> EventStore:
        return self._store

    # ------------------------------------------------------------------
    # Event streams
    # ------------------------------------------------------------------

    async def exists(self, agg_id: str) -> bool:
        return await self._store.current_version(str(agg_id)) > 0

    async def get(self, agg_id: str, as_of: datetime | None = None) -> MappedEventStream[DomainEvent]:
        """Lazy stream of decoded events, optionally as of a past moment.

        Raises :class:`StreamNotFoundError` for an unknown stream and
        :class:`StreamEmptyError` when nothing happened before *as_of*.
        """
        agg_id = str(agg_id)
        await self._head_or_raise(agg_id)
        if as_of is not None and await self._store.version_at(agg_id, as_of) == 0:
            raise StreamEmptyError(agg_id)
        return self._decoded(self._store.load(agg_id, as_of=as_of))

    async def get_by_types(
        self,
        agg_id: str,
        event_names: Collection[str],
        as_of: datetime | None = None,
    ) -> MappedEventStream[DomainEvent]:
        """Lazy stream of decoded events restricted to *event_names*."""
        agg_id = str(agg_id)
        await self._head_or_raise(agg_id)
        stream = self._store.load_by_types(agg_id, event_names, as_of=as_of)
        if await stream.first() is None:
            raise StreamEmptyError(agg_id)
        return self._decoded(stream)

    def _decoded(self, stream: Any) -> MappedEventStream[DomainEvent]:
        cache = self._codec.new_cache()

        async def decode(record: StoredEvent) -> DomainEvent:
            return await self._codec.decode(record, cache)

        return stream.map(decode)

    # ------------------------------------------------------------------
    # Reconstruction
    # ------------------------------------------------------------------

    async def load(self, agg_id: str, as_of: datetime | None = None) -> T:
        """Rebuild the aggregate, from the latest usable snapshot when there is one.

        With *as_of* the result reflects only events that occurred at or
        before that moment, and ``version`` is the last of those.
        """
        agg_id = str(agg_id)
        head = await self._head_or_raise(agg_id)
        target = head if as_of is None else await self._store.version_at(agg_id, as_of)
        if target == 0:
            raise StreamEmptyError(agg_id)

        cache = self._codec.new_cache()
        aggregate = await self._from_snapshot(agg_id, target, cache)
        start = aggregate.version

        async for record in self._store.load(agg_id, as_of=as_of, after_version=start):
            aggregate.replay(record.stream_version, await self._codec.decode(record, cache))

        if aggregate.version == 0:
            raise StreamEmptyError(agg_id)
        logger.debug(
            "aggregate.loaded",
            aggregate_type=aggregate.aggregate_type,
            aggregate_id=agg_id,
            version=aggregate.version,
            from_snapshot=start,
            as_of=as_of.isoformat() if as_of else None,
        )
        return aggregate

    async def rewind(self, agg_id: str, as_of: datetime) -> T:
        """State as of *as_of*, positioned at the stream head.

        Events raised on the result are appended after the latest event, so
        a past state can be restored by recording compensating facts.
        """
        aggregate = await self.load(agg_id, as_of=as_of)
        aggregate._version = await self._store.current_version(aggregate.id)  # noqa: SLF001
        return aggregate

    async def _head_or_raise(self, agg_id: str) -> int:
        head = await self._store.current_version(agg_id)
        if head == 0:
            raise StreamNotFoundError(agg_id)
        return head

    async def _from_snapshot(self, agg_id: str, target: int, cache: KeyCache | None) -> T:
        """Empty aggregate restored from the latest snapshot at or below *target*.

        A snapshot that cannot be opened or restored is skipped and a fresh
        aggregate at version 0 is returned, so the caller replays the stream.
        """
        aggregate = self._create_empty(agg_id)
        if self._snapshots is None or not aggregate.supports_snapshots():
            return aggregate
        record = await self._snapshots.latest(aggregate.id, aggregate.aggregate_type, max_version=target)
        if record is None:
            return aggregate
        try:
            data = await self._codec.open_state(record.data, self._snapshot_label(aggregate), cache)
            aggregate.restore(record.version, data)
        except (DecryptionError, LookupError, TypeError, ValueError, ArithmeticError) as exc:
            logger.warning(
                "snapshot.unusable",
                aggregate_type=aggregate.aggregate_type,
                aggregate_id=aggregate.id,
                version=record.version,
                error=exc.code if isinstance(exc, DecryptionError) else repr(exc),
            )
            return self._create_empty(agg_id)
        return aggregate

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self, aggregate: EventSourcedAggregate) -> list[StoredEvent]:
        """Append the aggregate's raised events with an optimistic version check."""
        return await self.save_all([aggregate])

    async def save_all(self, aggregates: Iterable[EventSourcedAggregate]) -> list[StoredEvent]:
        """Persist several aggregates as one atomic unit of work.

        Either every aggregate's events are appended or none are; only
        aggregates that raised events are written.
        """
        pending = [a for a in aggregates if a.pending_events]
        if not pending:
            return []
        cache = self._codec.new_cache()
        commits: list[Commit] = []
        for aggregate in pending:
            records = []
            for event in aggregate.pending_events:
                if event.aggregate_id != aggregate.id:
                    raise ValueError(
                        f"Event '{event.event_name}' targets '{event.aggregate_id}', "
                        f"raised on '{aggregate.id}'"
                    )
                records.append(await self._codec.encode(event, aggregate.aggregate_type, cache))
            commits.append(Commit(aggregate.id, records, aggregate.version))

        stored = await self._store.append_batch(commits)

        for aggregate in pending:
            aggregate.mark_committed()
            logger.info(
                "aggregate.saved",
                aggregate_type=aggregate.aggregate_type,
                aggregate_id=aggregate.id,
                version=aggregate.version,
            )
            await self._maybe_snapshot(aggregate, cache)
        return stored

    async def update(
        self,
        agg_id: str,
        mutate: Callable[[T], Awaitable[None] | None],
    ) -> T:
        """Load, mutate and save, retrying the whole cycle on a concurrency conflict."""

        async def attempt() -> T:
            aggregate = await self.load(agg_id)
            result = mutate(aggregate)
            if inspect.isawaitable(result):
                await result
            await self.save(aggregate)
            return aggregate

        return await self._retry.execute_async(attempt)

    async def _maybe_snapshot(self, aggregate: EventSourcedAggregate, cache: KeyCache | None) -> None:
        if self._snapshots is None or not aggregate.supports_snapshots():
            return
        if not self._policy.should_snapshot(aggregate):
            return
        try:
            data = await self._codec.seal_state(
                aggregate.snapshot_owner(),
                aggregate.snapshot_state(),
                self._snapshot_label(aggregate),
                cache,
            )
            await self._snapshots.save(
                SnapshotRecord(
                    aggregate_id=aggregate.id,
                    aggregate_type=aggregate.aggregate_type,
                    version=aggregate.version,
                    data=data,
                )
            )
        except Exception as exc:  # noqa: BLE001 – the events are already committed
            logger.warning(
                "snapshot.save_failed",
                aggregate_type=aggregate.aggregate_type,
                aggregate_id=aggregate.id,
                version=aggregate.version,
                error=repr(exc),
            )
            return
        logger.info(
            "snapshot.saved",
            aggregate_type=aggregate.aggregate_type,
            aggregate_id=aggregate.id,
            version=aggregate.version,
        )

    @staticmethod
    def _snapshot_label(aggregate: EventSourcedAggregate) -> str:
        return f"snapshot:{aggregate.aggregate_type}"


__all__ = ["EventSourcedRepository"]
