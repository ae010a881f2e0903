"""Domain events – the facts an event-sourced aggregate records."""

from __future__ import annotations

import dataclasses
import enum
import types
import typing
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar

from fluxstore.kernel.time.clock import ensure_utc, utc_now

#: Fields carried by every event outside of its payload.
ENVELOPE_FIELDS: frozenset[str] = frozenset(
    {"aggregate_id", "owner_id", "request_id", "occurred_on"}
)


def _to_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _to_json(v) for k, v in value.items()}
    return value


def _from_json(value: Any, hint: Any) -> Any:
    if value is None:
        return None
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        hint = args[0] if len(args) == 1 else None
    if hint is datetime and isinstance(value, str):
        return ensure_utc(datetime.fromisoformat(value))
    if hint is date and isinstance(value, str):
        return date.fromisoformat(value)
    if hint is Decimal:
        return Decimal(str(value))
    if hint is uuid.UUID:
        return uuid.UUID(str(value))
    if isinstance(hint, type) and issubclass(hint, enum.Enum):
        return hint(value)
    if typing.get_origin(hint) is tuple and isinstance(value, list):
        return tuple(value)
    return value


@dataclasses.dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for domain events.

    ``EVENT_NAME`` is the stable tag written to the log; it is decoupled from
    the Python class name so classes can be renamed or moved freely.
    ``EVENT_VERSION`` is the payload schema version used for upcasting.

    Example::

        @dataclasses.dataclass(frozen=True, kw_only=True)
        class BudgetRenamed(DomainEvent):
            EVENT_NAME: ClassVar[str] = "budget.renamed"
            name: str
    """

    EVENT_NAME: ClassVar[str] = ""
    EVENT_VERSION: ClassVar[int] = 1

    aggregate_id: str
    owner_id: str | None = None
    request_id: str | None = None
    occurred_on: datetime = dataclasses.field(default_factory=utc_now)

    @property
    def event_name(self) -> str:
        return type(self).EVENT_NAME or type(self).__name__

    @classmethod
    def payload_fields(cls) -> tuple[str, ...]:
        """Names of the dataclass fields that make up the payload."""
        return tuple(
            f.name for f in dataclasses.fields(cls) if f.name not in ENVELOPE_FIELDS
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-serialisable payload (envelope fields excluded)."""
        return {name: _to_json(getattr(self, name)) for name in self.payload_fields()}

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        *,
        aggregate_id: str,
        owner_id: str | None = None,
        request_id: str | None = None,
        occurred_on: datetime | None = None,
    ) -> "DomainEvent":
        """Rebuild an event from a stored payload and its envelope."""
        hints = typing.get_type_hints(cls)
        kwargs = {
            name: _from_json(payload[name], hints.get(name))
            for name in cls.payload_fields()
            if name in payload
        }
        return cls(
            aggregate_id=aggregate_id,
            owner_id=owner_id,
            request_id=request_id,
            occurred_on=ensure_utc(occurred_on) if occurred_on else utc_now(),
            **kwargs,
        )


__all__ = ["ENVELOPE_FIELDS", "DomainEvent"]
