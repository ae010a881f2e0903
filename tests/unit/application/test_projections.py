"""Unit tests for projections: registry, manager replay/reset/status and live delivery."""

from __future__ import annotations

import asyncio
import dataclasses
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest

from fluxstore.application.event_sourcing import EventCodec, InMemoryEventStore, InProcessEventBus, StoredEvent
from fluxstore.application.projections import (
    Handler,
    ProjectionManager,
    ProjectionRegistry,
    ProjectionStatus,
    ProjectionSubscriber,
)
from fluxstore.kernel.ddd import DomainEvent, UnitOfWork
from fluxstore.kernel.errors import (
    ProjectionNotFoundError,
    PublishError,
    ReplayBatchError,
    UnknownEventTypeError,
)
from fluxstore.security.encryption import FieldEncryptor, InMemoryKeyManager
from fluxstore.testing.fakes import (
    Budget,
    BudgetCreated,
    BudgetRenamed,
    BudgetRepository,
    BudgetSummaryProjection,
    InMemoryProjection,
    InMemoryUnitOfWork,
    budget_event_map,
)

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


class BudgetNamesProjection(InMemoryProjection):
    name = "budget_names"
    aggregate_type = "budget"
    table_name = "budget_names"

    def _handlers(self) -> dict[str, Handler]:
        return {
            BudgetCreated.EVENT_NAME: self._on_named,
            BudgetRenamed.EVENT_NAME: self._on_named,
        }

    async def _on_named(self, event: Any, record: StoredEvent, uow: UnitOfWork) -> None:
        self.upsert(uow, record.stream_id, {"name": event.name}, record.occurred_on)


class FlakyBudgetSummary(BudgetSummaryProjection):
    """Fails on the given global positions until ``fail_on`` is cleared."""

    def __init__(self, fail_on: set[int]) -> None:
        super().__init__()
        self.fail_on = fail_on

    async def handle(self, event: DomainEvent, record: StoredEvent, uow: UnitOfWork) -> None:
        await super().handle(event, record, uow)
        if record.position in self.fail_on:
            raise RuntimeError(f"cannot project event {record.position}")


@dataclasses.dataclass
class Wiring:
    store: InMemoryEventStore
    repo: BudgetRepository
    codec: EventCodec
    keys: InMemoryKeyManager
    manager: ProjectionManager


def _wiring(*projections: InMemoryProjection, live: bool = False, batch_size: int = 2) -> Wiring:
    events = budget_event_map()
    keys = InMemoryKeyManager()
    codec = EventCodec(events, FieldEncryptor(keys, events))
    registry = ProjectionRegistry(projections)
    bus = InProcessEventBus()
    if live:
        for projection in registry:
            bus.subscribe(ProjectionSubscriber(projection, codec, InMemoryUnitOfWork))
    store = InMemoryEventStore(bus)
    return Wiring(
        store=store,
        repo=BudgetRepository(store, codec),
        codec=codec,
        keys=keys,
        manager=ProjectionManager(store, registry, codec, InMemoryUnitOfWork, batch_size=batch_size),
    )


async def _seed(repo: BudgetRepository) -> None:
    """Five events: budget-1 at positions 1-4, budget-2 at position 5."""
    first = Budget.create("budget-1", "user-1", "Groceries", occurred_on=T0)
    first.credit(Decimal("10"), occurred_on=T0 + timedelta(hours=1))
    first.credit(Decimal("5"), occurred_on=T0 + timedelta(hours=2))
    first.rename("Food", occurred_on=T0 + timedelta(hours=3))
    await repo.save(first)
    await repo.save(Budget.create("budget-2", "user-2", "Rent", occurred_on=T0 + timedelta(hours=4)))


EXPECTED_SUMMARY = {
    "budget-1": {"name": "Food", "balance": "15", "version": 4, "updated_at": T0 + timedelta(hours=3)},
    "budget-2": {"name": "Rent", "balance": "0", "version": 1, "updated_at": T0 + timedelta(hours=4)},
}


# ---------------------------------------------------------------------------
# ProjectionRegistry
# ---------------------------------------------------------------------------


class TestProjectionRegistry:
    def test_names_sorted(self) -> None:
        registry = ProjectionRegistry([BudgetSummaryProjection(), BudgetNamesProjection()])
        assert registry.names() == ["budget_names", "budget_summary"]
        assert [p.name for p in registry] == ["budget_names", "budget_summary"]
        assert "budget_summary" in registry
        assert len(registry) == 2

    def test_duplicate_rejected(self) -> None:
        registry = ProjectionRegistry([BudgetSummaryProjection()])
        with pytest.raises(ValueError):
            registry.register(BudgetSummaryProjection())

    def test_unknown_name(self) -> None:
        with pytest.raises(ProjectionNotFoundError):
            ProjectionRegistry().get("missing")

    def test_name_defaults_to_class_name(self) -> None:
        class Unnamed(InMemoryProjection):
            def _handlers(self) -> dict[str, Handler]:
                return {}

        assert Unnamed.name == "Unnamed"

    def test_event_names_from_handlers(self) -> None:
        assert BudgetNamesProjection().event_names == {"budget.created", "budget.renamed"}


class TestProjectionHandle:
    def test_unknown_tag_raises(self) -> None:
        projection = BudgetSummaryProjection()
        record = StoredEvent(stream_id="b", stream_name="budget", event_name="budget.closed", payload={})
        event = BudgetRenamed(aggregate_id="b", name="x")

        with pytest.raises(UnknownEventTypeError):
            asyncio.run(projection.handle(event, record, InMemoryUnitOfWork()))


# ---------------------------------------------------------------------------
# ProjectionManager
# ---------------------------------------------------------------------------


class TestReplay:
    def test_full_replay_builds_read_model(self) -> None:
        projection = BudgetSummaryProjection()
        w = _wiring(projection)

        async def run() -> int:
            await _seed(w.repo)
            return await w.manager.replay("budget_summary")

        assert asyncio.run(run()) == 5
        assert projection.rows == EXPECTED_SUMMARY

    def test_full_replay_resets_first(self) -> None:
        projection = BudgetSummaryProjection()
        projection.rows["stale"] = {"name": "gone", "balance": "0", "version": 1, "updated_at": T0}
        w = _wiring(projection)

        async def run() -> None:
            await _seed(w.repo)
            await w.manager.replay("budget_summary")

        asyncio.run(run())
        assert "stale" not in projection.rows

    def test_replay_is_idempotent(self) -> None:
        projection = BudgetSummaryProjection()
        w = _wiring(projection)

        async def run() -> int:
            await _seed(w.repo)
            await w.manager.replay("budget_summary")
            await w.manager.replay("budget_summary", from_date=T0)
            return await w.manager.replay("budget_summary", from_date=T0 + timedelta(hours=2))

        assert asyncio.run(run()) == 3
        assert projection.rows == EXPECTED_SUMMARY

    def test_from_date_keeps_existing_rows(self) -> None:
        projection = BudgetNamesProjection()
        w = _wiring(projection)

        async def run() -> None:
            await _seed(w.repo)
            await w.manager.replay("budget_names", from_date=T0 + timedelta(hours=4))

        asyncio.run(run())
        assert set(projection.rows) == {"budget-2"}

    def test_reset_first_with_from_date(self) -> None:
        projection = BudgetNamesProjection()
        w = _wiring(projection)

        async def run() -> None:
            await _seed(w.repo)
            await w.manager.replay("budget_names")
            await w.manager.replay("budget_names", from_date=T0 + timedelta(hours=3), reset_first=True)

        asyncio.run(run())
        assert {k: r["name"] for k, r in projection.rows.items()} == {"budget-1": "Food", "budget-2": "Rent"}

    def test_failed_batch_rolls_back_alone_and_resumes(self) -> None:
        projection = FlakyBudgetSummary(fail_on={4})
        w = _wiring(projection, batch_size=2)

        async def run() -> None:
            await _seed(w.repo)
            await w.manager.replay("budget_summary")

        with pytest.raises(ReplayBatchError) as exc_info:
            asyncio.run(run())
        err = exc_info.value
        assert (err.projection, err.offset, err.position) == ("budget_summary", 2, 4)
        assert isinstance(err.__cause__, RuntimeError)
        assert projection.rows["budget-1"]["balance"] == "10"
        assert projection.rows["budget-1"]["version"] == 2
        assert "budget-2" not in projection.rows

        projection.fail_on.clear()
        assert asyncio.run(w.manager.replay("budget_summary", offset=err.offset)) == 3
        assert projection.rows == EXPECTED_SUMMARY

    def test_reset_first_rejects_offset(self) -> None:
        projection = BudgetSummaryProjection()
        w = _wiring(projection)

        async def run() -> None:
            await _seed(w.repo)
            await w.manager.replay("budget_summary")
            await w.manager.replay("budget_summary", reset_first=True, offset=2)

        with pytest.raises(ValueError, match="offset"):
            asyncio.run(run())
        assert projection.rows == EXPECTED_SUMMARY

    def test_erased_subjects_are_skipped(self) -> None:
        projection = BudgetSummaryProjection()
        w = _wiring(projection)

        async def run() -> int:
            await _seed(w.repo)
            await w.keys.delete_key("user-2")
            return await w.manager.replay("budget_summary")

        assert asyncio.run(run()) == 4
        assert set(projection.rows) == {"budget-1"}

    def test_unknown_projection(self) -> None:
        w = _wiring(BudgetSummaryProjection())
        with pytest.raises(ProjectionNotFoundError):
            asyncio.run(w.manager.replay("nope"))

    def test_replay_all(self) -> None:
        w = _wiring(BudgetSummaryProjection(), BudgetNamesProjection())

        async def run() -> dict[str, int]:
            await _seed(w.repo)
            return await w.manager.replay_all()

        assert asyncio.run(run()) == {"budget_names": 3, "budget_summary": 5}

    def test_invalid_batch_size(self) -> None:
        events = budget_event_map()
        with pytest.raises(ValueError):
            ProjectionManager(InMemoryEventStore(), ProjectionRegistry(), EventCodec(events), InMemoryUnitOfWork, 0)


class TestResetAndStatus:
    def test_status_after_replay(self) -> None:
        w = _wiring(BudgetSummaryProjection(), BudgetNamesProjection())

        async def run() -> list[ProjectionStatus]:
            await _seed(w.repo)
            await w.manager.replay("budget_summary")
            return await w.manager.status_all()

        names, summary = asyncio.run(run())
        assert names == ProjectionStatus("budget_names", "budget_names", 0, None)
        assert summary.row_count == 2
        assert summary.last_updated == T0 + timedelta(hours=4)
        assert summary.to_dict()["last_updated"] == "2026-01-01T04:00:00+00:00"

    def test_reset_and_reset_all(self) -> None:
        summary = BudgetSummaryProjection()
        names = BudgetNamesProjection()
        w = _wiring(summary, names)

        async def run() -> list[str]:
            await _seed(w.repo)
            await w.manager.replay_all()
            await w.manager.reset("budget_summary")
            assert summary.rows == {}
            assert len(names.rows) == 2
            return await w.manager.reset_all()

        assert asyncio.run(run()) == ["budget_names", "budget_summary"]
        assert names.rows == {}


# ---------------------------------------------------------------------------
# ProjectionSubscriber
# ---------------------------------------------------------------------------


class TestLiveProjection:
    def test_live_rows_match_replay(self) -> None:
        live = BudgetSummaryProjection()
        w = _wiring(live, live=True)
        asyncio.run(_seed(w.repo))
        assert live.rows == EXPECTED_SUMMARY

        asyncio.run(w.manager.replay("budget_summary"))
        assert live.rows == EXPECTED_SUMMARY

    def test_failing_projection_rolls_back_append(self) -> None:
        projection = FlakyBudgetSummary(fail_on={1})
        w = _wiring(projection, live=True)

        with pytest.raises(PublishError):
            asyncio.run(w.repo.save(Budget.create("budget-1", "user-1", "Groceries")))
        assert asyncio.run(w.store.count()) == 0
        assert projection.rows == {}

    def test_redelivery_of_erased_subject_is_skipped(self) -> None:
        projection = BudgetSummaryProjection()
        w = _wiring(projection, live=True)
        subscriber = ProjectionSubscriber(projection, w.codec, InMemoryUnitOfWork)

        async def run() -> None:
            await _seed(w.repo)
            await w.keys.delete_key("user-1")
            await subscriber.handle(w.store.all_events())

        asyncio.run(run())
        assert projection.rows == EXPECTED_SUMMARY
