"""Unit tests for the EventTypeMap and its startup validation."""

from __future__ import annotations

import dataclasses
from typing import Any, ClassVar

import pytest

from fluxstore.application.event_sourcing import EventSourcedAggregate, EventTypeMap
from fluxstore.application.event_sourcing.aggregate import Applier
from fluxstore.config.validation import ConfigError
from fluxstore.kernel.ddd import DomainEvent
from fluxstore.kernel.errors import UnknownEventTypeError
from fluxstore.testing.fakes import Budget, BudgetCreated, BudgetRenamed, budget_event_map


@dataclasses.dataclass(frozen=True, kw_only=True)
class NoteAdded(DomainEvent):
    EVENT_NAME: ClassVar[str] = "note.added"
    EVENT_VERSION: ClassVar[int] = 3

    text: str
    priority: str = "normal"


class Note(EventSourcedAggregate):
    aggregate_type = "note"

    def __init__(self, aggregate_id: str) -> None:
        super().__init__(aggregate_id)
        self.text = ""

    def _appliers(self) -> dict[str, Applier]:
        return {NoteAdded.EVENT_NAME: self._on_added}

    def _on_added(self, event: NoteAdded) -> None:
        self.text = event.text


def _v1_to_v2(payload: dict[str, Any]) -> dict[str, Any]:
    return {"text": payload.pop("body"), **payload}


def _v2_to_v3(payload: dict[str, Any]) -> dict[str, Any]:
    return {**payload, "priority": "normal"}


class TestRegistration:
    def test_resolve(self) -> None:
        schema = budget_event_map().resolve("budget.created")
        assert schema.event_cls is BudgetCreated
        assert schema.aggregate_type == "budget"
        assert schema.personal_data == frozenset({"name"})
        assert schema.creates_key is True
        assert schema.version == 1

    def test_unknown_tag_raises(self) -> None:
        with pytest.raises(UnknownEventTypeError):
            budget_event_map().resolve("budget.closed")

    def test_duplicate_name_for_other_class_rejected(self) -> None:
        events = EventTypeMap()
        events.register(BudgetRenamed)

        @dataclasses.dataclass(frozen=True, kw_only=True)
        class Impostor(DomainEvent):
            EVENT_NAME: ClassVar[str] = "budget.renamed"

        with pytest.raises(ConfigError):
            events.register(Impostor)

    def test_re_registering_same_class_is_allowed(self) -> None:
        events = EventTypeMap()
        events.register(BudgetRenamed)
        events.register(BudgetRenamed, personal_data=("name",))
        assert events.personal_fields("budget.renamed") == frozenset({"name"})

    def test_events_for_aggregate(self) -> None:
        names = budget_event_map().events_for("budget")
        assert names == {"budget.created", "budget.renamed", "budget.credited", "budget.debited"}

    def test_aggregate_class(self) -> None:
        events = budget_event_map()
        assert events.aggregate_class("budget") is Budget
        with pytest.raises(UnknownEventTypeError):
            events.aggregate_class("ledger")


class TestValidation:
    def test_budget_map_is_valid(self) -> None:
        events = budget_event_map()
        events.validate()
        assert events.validated

    def test_personal_field_must_exist(self) -> None:
        events = budget_event_map()
        events.register(BudgetRenamed, aggregate=Budget, personal_data=("nickname",))
        with pytest.raises(ConfigError) as exc_info:
            events.validate()
        assert any("nickname" in p for p in exc_info.value.detail["problems"])

    def test_aggregate_must_be_registered(self) -> None:
        events = EventTypeMap()
        events.register(BudgetRenamed, aggregate="budget")
        with pytest.raises(ConfigError):
            events.validate()

    def test_every_event_needs_an_applier(self) -> None:
        events = EventTypeMap()
        events.register_aggregate(Note)
        events.register(NoteAdded, aggregate=Note)
        events.register(BudgetRenamed, aggregate=Note)
        events.register_upcaster("note.added", 1, _v1_to_v2)
        events.register_upcaster("note.added", 2, _v2_to_v3)
        with pytest.raises(ConfigError) as exc_info:
            events.validate()
        assert exc_info.value.detail["problems"] == ["note: no applier for 'budget.renamed'"]

    def test_missing_upcaster_reported(self) -> None:
        events = EventTypeMap()
        events.register_aggregate(Note)
        events.register(NoteAdded, aggregate=Note)
        events.register_upcaster("note.added", 2, _v2_to_v3)
        with pytest.raises(ConfigError) as exc_info:
            events.validate()
        assert exc_info.value.detail["problems"] == ["note.added: no upcaster from version 1"]

    def test_registration_invalidates(self) -> None:
        events = budget_event_map()
        events.validate()
        events.register_aggregate(Note)
        assert not events.validated


class TestUpcasting:
    def test_upcasts_step_by_step(self) -> None:
        events = EventTypeMap()
        events.register(NoteAdded)
        events.register_upcaster("note.added", 1, _v1_to_v2)
        events.register_upcaster("note.added", 2, _v2_to_v3)
        version, payload = events.upcast("note.added", 1, {"body": "hi"})
        assert version == 3
        assert payload == {"text": "hi", "priority": "normal"}

    def test_current_version_untouched(self) -> None:
        events = EventTypeMap()
        events.register(NoteAdded)
        assert events.upcast("note.added", 3, {"text": "x"}) == (3, {"text": "x"})

    def test_missing_step_raises(self) -> None:
        events = EventTypeMap()
        events.register(NoteAdded)
        events.register_upcaster("note.added", 1, _v1_to_v2)
        with pytest.raises(UnknownEventTypeError):
            events.upcast("note.added", 1, {"body": "hi"})

    def test_upcaster_receives_a_copy(self) -> None:
        events = EventTypeMap()
        events.register(NoteAdded)
        events.register_upcaster("note.added", 1, _v1_to_v2)
        events.register_upcaster("note.added", 2, _v2_to_v3)
        original = {"body": "hi"}
        events.upcast("note.added", 1, original)
        assert original == {"body": "hi"}
