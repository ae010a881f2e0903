"""Unit tests for kernel DDD building blocks: events, recorder, aggregate root."""

from __future__ import annotations

import dataclasses
import enum
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import ClassVar

from fluxstore.kernel.ddd import ENVELOPE_FIELDS, AggregateRoot, DomainEvent, EventRecorder


class Colour(enum.Enum):
    RED = "red"
    BLUE = "blue"


@dataclasses.dataclass(frozen=True, kw_only=True)
class SampleEvent(DomainEvent):
    EVENT_NAME: ClassVar[str] = "sample.happened"
    EVENT_VERSION: ClassVar[int] = 2

    amount: Decimal
    when: datetime
    day: date
    colour: Colour
    tags: tuple[str, ...] = ()
    note: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class Untagged(DomainEvent):
    value: int


def _sample(**overrides: object) -> SampleEvent:
    values: dict[str, object] = {
        "aggregate_id": "agg-1",
        "owner_id": "user-1",
        "amount": Decimal("12.50"),
        "when": datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
        "day": date(2026, 3, 1),
        "colour": Colour.BLUE,
        "tags": ("a", "b"),
    }
    values.update(overrides)
    return SampleEvent(**values)  # type: ignore[arg-type]


class TestDomainEvent:
    def test_event_name_from_class_var(self) -> None:
        assert _sample().event_name == "sample.happened"

    def test_event_name_falls_back_to_class_name(self) -> None:
        assert Untagged(aggregate_id="a", value=1).event_name == "Untagged"

    def test_payload_excludes_envelope_fields(self) -> None:
        payload = _sample().to_payload()
        assert not ENVELOPE_FIELDS & set(payload)
        assert set(payload) == {"amount", "when", "day", "colour", "tags", "note"}

    def test_payload_is_json_friendly(self) -> None:
        payload = _sample().to_payload()
        assert payload["amount"] == "12.50"
        assert payload["when"] == "2026-03-01T09:30:00+00:00"
        assert payload["day"] == "2026-03-01"
        assert payload["colour"] == "blue"
        assert payload["tags"] == ["a", "b"]
        assert payload["note"] is None

    def test_from_payload_restores_types(self) -> None:
        original = _sample(note="hello")
        rebuilt = SampleEvent.from_payload(
            original.to_payload(),
            aggregate_id="agg-1",
            owner_id="user-1",
            occurred_on=original.occurred_on,
        )
        assert rebuilt == original

    def test_occurred_on_is_utc(self) -> None:
        local = datetime(2026, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=1)))
        rebuilt = SampleEvent.from_payload(_sample().to_payload(), aggregate_id="a", occurred_on=local)
        assert rebuilt.occurred_on.utcoffset() == timedelta(0)
        assert rebuilt.occurred_on.hour == 9


class TestEventRecorder:
    def test_raise_and_drain(self) -> None:
        recorder = EventRecorder()
        first = Untagged(aggregate_id="a", value=1)
        second = Untagged(aggregate_id="a", value=2)
        recorder.raise_event(first)
        recorder.raise_event(second)
        assert recorder.events == (first, second)
        assert len(recorder) == 2
        assert recorder.drain() == [first, second]
        assert not recorder
        assert recorder.events == ()

    def test_events_is_a_snapshot(self) -> None:
        recorder = EventRecorder()
        view = recorder.events
        recorder.raise_event(Untagged(aggregate_id="a", value=1))
        assert view == ()


class TestAggregateRoot:
    def test_starts_at_version_zero(self) -> None:
        root = AggregateRoot("a")
        assert root.version == 0
        assert root.pending_events == ()

    def test_mark_committed_drains_and_advances(self) -> None:
        root = AggregateRoot("a")
        root.recorder.raise_event(Untagged(aggregate_id="a", value=1))
        root.recorder.raise_event(Untagged(aggregate_id="a", value=2))
        drained = root.mark_committed()
        assert len(drained) == 2
        assert root.version == 2
        assert root.pending_events == ()

    def test_equality_by_id(self) -> None:
        assert AggregateRoot("a") == AggregateRoot("a")
        assert AggregateRoot("a") != AggregateRoot("b")
        assert len({AggregateRoot("a"), AggregateRoot("a")}) == 1
