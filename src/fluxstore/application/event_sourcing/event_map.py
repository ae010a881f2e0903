"""Application event sourcing – EventTypeMap.

The single table of every event kind the application knows about: which
dataclass decodes a tag, which aggregate type owns it, which payload fields
are personal data, whether it may create the owner's encryption key, and how
older payload versions are upcast.  Built at bootstrap and checked once with
:meth:`EventTypeMap.validate`.

Example::

    events = EventTypeMap()
    events.register_aggregate(Budget)
    events.register(BudgetCreated, aggregate=Budget, personal_data=("name",), creates_key=True)
    events.register(BudgetRenamed, aggregate=Budget, personal_data=("name",))
    events.register_upcaster("budget.created", 1, lambda p: {**p, "currency": "EUR"})
    events.validate()
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, Callable

from fluxstore.config.validation import ConfigError
from fluxstore.kernel.ddd.domain_event import DomainEvent
from fluxstore.kernel.errors import UnknownEventTypeError

if TYPE_CHECKING:
    from fluxstore.application.event_sourcing.aggregate import EventSourcedAggregate

Upcaster = Callable[[dict[str, Any]], dict[str, Any]]


@dataclasses.dataclass(frozen=True)
class EventSchema:
    """Registration entry for one event tag."""

    event_name: str
    event_cls: type[DomainEvent]
    aggregate_type: str | None
    personal_data: frozenset[str] = frozenset()
    creates_key: bool = False

    @property
    def version(self) -> int:
        return self.event_cls.EVENT_VERSION


class EventTypeMap:
    """Explicit registry of event kinds, aggregates, upcasters and personal data."""

    def __init__(self) -> None:
        self._schemas: dict[str, EventSchema] = {}
        self._aggregates: dict[str, type[EventSourcedAggregate]] = {}
        self._upcasters: dict[tuple[str, int], Upcaster] = {}
        self._validated = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        event_cls: type[DomainEvent],
        *,
        aggregate: type[EventSourcedAggregate] | str | None = None,
        personal_data: tuple[str, ...] | frozenset[str] = (),
        creates_key: bool = False,
    ) -> type[DomainEvent]:
        """Register *event_cls* under its ``EVENT_NAME``; returns the class."""
        name = event_cls.EVENT_NAME or event_cls.__name__
        if name in self._schemas and self._schemas[name].event_cls is not event_cls:
            raise ConfigError(f"Event name '{name}' is already registered")
        aggregate_type = aggregate if isinstance(aggregate, str) or aggregate is None else aggregate.aggregate_type
        self._schemas[name] = EventSchema(
            event_name=name,
            event_cls=event_cls,
            aggregate_type=aggregate_type,
            personal_data=frozenset(personal_data),
            creates_key=creates_key,
        )
        self._validated = False
        return event_cls

    def register_aggregate(self, aggregate_cls: type[EventSourcedAggregate]) -> type[EventSourcedAggregate]:
        self._aggregates[aggregate_cls.aggregate_type] = aggregate_cls
        self._validated = False
        return aggregate_cls

    def register_upcaster(self, event_name: str, from_version: int, fn: Upcaster) -> None:
        """Register *fn* turning a ``from_version`` payload into ``from_version + 1``."""
        self._upcasters[(event_name, from_version)] = fn

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, event_name: str) -> EventSchema:
        try:
            return self._schemas[event_name]
        except KeyError:
            raise UnknownEventTypeError(event_name) from None

    def __contains__(self, event_name: object) -> bool:
        return event_name in self._schemas

    def registered_events(self) -> frozenset[str]:
        return frozenset(self._schemas)

    def aggregate_class(self, stream_name: str) -> type[EventSourcedAggregate]:
        try:
            return self._aggregates[stream_name]
        except KeyError:
            raise UnknownEventTypeError(stream_name, target="aggregate registry") from None

    def events_for(self, aggregate_type: str) -> frozenset[str]:
        return frozenset(s.event_name for s in self._schemas.values() if s.aggregate_type == aggregate_type)

    def personal_fields(self, event_name: str) -> frozenset[str]:
        return self.resolve(event_name).personal_data

    def creates_key(self, event_name: str) -> bool:
        return self.resolve(event_name).creates_key

    def upcast(self, event_name: str, version: int, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        """Apply registered upcasters until *payload* reaches the current version."""
        target = self.resolve(event_name).version
        while version < target:
            fn = self._upcasters.get((event_name, version))
            if fn is None:
                raise UnknownEventTypeError(event_name, target=f"upcaster from version {version}")
            payload = fn(dict(payload))
            version += 1
        return version, payload

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check the table once at startup; raises :class:`ConfigError` listing every problem."""
        problems: list[str] = []
        for schema in self._schemas.values():
            fields = set(schema.event_cls.payload_fields())
            for name in sorted(schema.personal_data - fields):
                problems.append(f"{schema.event_name}: personal field '{name}' is not a payload field")
            if schema.aggregate_type is not None and schema.aggregate_type not in self._aggregates:
                problems.append(f"{schema.event_name}: aggregate '{schema.aggregate_type}' is not registered")
            for version in range(1, schema.version):
                if (schema.event_name, version) not in self._upcasters:
                    problems.append(f"{schema.event_name}: no upcaster from version {version}")
        for aggregate_type, cls in self._aggregates.items():
            handled = set(cls.handled_events())
            for name in sorted(self.events_for(aggregate_type) - handled):
                problems.append(f"{aggregate_type}: no applier for '{name}'")
        if problems:
            raise ConfigError("Invalid event type map", detail={"problems": problems})
        self._validated = True

    @property
    def validated(self) -> bool:
        return self._validated


__all__ = ["EventSchema", "EventTypeMap", "Upcaster"]
