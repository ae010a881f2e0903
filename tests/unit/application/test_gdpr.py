"""Unit tests for erasure via crypto-shredding."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from fluxstore.application.event_sourcing import (
    EventCodec,
    InMemoryEventStore,
    InMemorySnapshotStore,
    SnapshotPolicy,
)
from fluxstore.application.gdpr import (
    CryptoShreddingEraser,
    DataErasedEvent,
    Erasable,
    ErasureResult,
    ErasureService,
)
from fluxstore.kernel.errors import EncryptionError, SubjectErasedError
from fluxstore.security.encryption import FieldEncryptor, InMemoryKeyManager
from fluxstore.testing.fakes import Budget, BudgetRepository, budget_event_map


class FailingEraser:
    scope = "search_index"

    async def erase(self, subject_id: str) -> ErasureResult:
        raise ConnectionError("index unreachable")


class RecordingEraser:
    scope = "mailing_list"

    def __init__(self) -> None:
        self.erased: list[str] = []

    async def erase(self, subject_id: str) -> ErasureResult:
        self.erased.append(subject_id)
        return ErasureResult(scope=self.scope, success=True)


def _wiring() -> tuple[BudgetRepository, InMemoryEventStore, InMemoryKeyManager, InMemorySnapshotStore]:
    events = budget_event_map()
    keys = InMemoryKeyManager()
    codec = EventCodec(events, FieldEncryptor(keys, events))
    store = InMemoryEventStore()
    snapshots = InMemorySnapshotStore()
    return BudgetRepository(store, codec, snapshots, SnapshotPolicy(2)), store, keys, snapshots


async def _seed(repo: BudgetRepository) -> None:
    mine = Budget.create("budget-1", "user-1", "Therapy")
    mine.credit(Decimal("80"))
    mine.credit(Decimal("20"))
    mine.rename("Health")
    await repo.save(mine)
    await repo.save(Budget.create("budget-2", "user-2", "Rent"))


class TestCryptoShredding:
    def test_erased_subject_cannot_be_loaded(self) -> None:
        repo, store, keys, snapshots = _wiring()

        async def run() -> None:
            await _seed(repo)
            await ErasureService([CryptoShreddingEraser(keys)]).erase("user-1")
            await repo.load("budget-1")

        with pytest.raises(SubjectErasedError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.owner_id == "user-1"
        assert len(store.all_events("budget-1")) == 4
        assert snapshots.all_snapshots() != []

    def test_erased_subject_stream_cannot_be_read(self) -> None:
        repo, _, keys, _ = _wiring()

        async def run() -> None:
            await _seed(repo)
            await keys.delete_key("user-1")
            await (await repo.get("budget-1")).to_list()

        with pytest.raises(SubjectErasedError):
            asyncio.run(run())

    def test_other_subjects_unaffected(self) -> None:
        repo, _, keys, _ = _wiring()

        async def run() -> Budget:
            await _seed(repo)
            await keys.delete_key("user-1")
            return await repo.load("budget-2")

        assert asyncio.run(run()).name == "Rent"

    def test_non_personal_events_still_readable(self) -> None:
        repo, _, keys, _ = _wiring()

        async def run() -> list[Decimal]:
            await _seed(repo)
            await keys.delete_key("user-1")
            stream = await repo.get_by_types("budget-1", ["budget.credited"])
            return [e.amount async for e in stream]

        assert asyncio.run(run()) == [Decimal("80"), Decimal("20")]

    def test_no_new_personal_data_after_erasure(self) -> None:
        repo, _, keys, _ = _wiring()
        budget = Budget.create("budget-1", "user-1", "Therapy")
        asyncio.run(repo.save(budget))
        asyncio.run(keys.delete_key("user-1"))

        budget.rename("Again")
        with pytest.raises(EncryptionError):
            asyncio.run(repo.save(budget))


class TestErasureService:
    def test_reports_each_handler(self) -> None:
        keys = InMemoryKeyManager()
        recording = RecordingEraser()
        service = ErasureService([CryptoShreddingEraser(keys)])
        service.register(recording)

        async def run() -> DataErasedEvent:
            await keys.generate_key("user-1")
            return await service.erase("user-1")

        event = asyncio.run(run())
        assert event.succeeded
        assert event.results[0] == ErasureResult("event_store", True, "key deleted")
        assert recording.erased == ["user-1"]
        assert service.events == [event]

    def test_missing_key_is_still_success(self) -> None:
        service = ErasureService([CryptoShreddingEraser(InMemoryKeyManager())])
        event = asyncio.run(service.erase("ghost"))
        assert event.succeeded
        assert event.results[0].detail == "no key on record"

    def test_failing_handler_does_not_stop_others(self) -> None:
        recording = RecordingEraser()
        service = ErasureService([FailingEraser(), recording])
        event = asyncio.run(service.erase("user-1"))
        assert not event.succeeded
        assert event.results[0] == ErasureResult("search_index", False, "index unreachable")
        assert recording.erased == ["user-1"]

    def test_erasable_protocol(self) -> None:
        assert isinstance(CryptoShreddingEraser(InMemoryKeyManager()), Erasable)
        assert isinstance(RecordingEraser(), Erasable)
