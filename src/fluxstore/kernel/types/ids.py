"""String-based identifier value objects."""

from __future__ import annotations

import dataclasses
import uuid

from fluxstore.kernel.errors.domain import ValidationError

#: Namespace for name-based (uuid5) identifiers derived by fluxstore.
FLUXSTORE_NAMESPACE = uuid.UUID("6f1c52b4-3d0e-5a4e-9a57-7b8b1f0d2c11")


@dataclasses.dataclass(frozen=True, slots=True)
class _StrId:
    """Base for string-typed identifiers."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValidationError(f"{type(self).__name__} must not be empty")

    def __str__(self) -> str:
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class EntityId(_StrId):
    """Aggregate / stream identifier.

    Examples::

        eid = EntityId.generate()                      # random (uuid4)
        eid = EntityId.deterministic("budget:42:food") # stable (uuid5)
        eid = EntityId("abc-123")                      # direct construction
    """

    @classmethod
    def generate(cls) -> "EntityId":
        """Return a new random ``EntityId``."""
        return cls(str(uuid.uuid4()))

    @classmethod
    def deterministic(cls, name: str, namespace: uuid.UUID = FLUXSTORE_NAMESPACE) -> "EntityId":
        """Return the same ``EntityId`` for the same *name*, on every host."""
        return cls(str(uuid.uuid5(namespace, name)))

    @classmethod
    def from_str(cls, value: str) -> "EntityId":
        return cls(value)


@dataclasses.dataclass(frozen=True, slots=True)
class CorrelationId(_StrId):
    """Request correlation identifier, stamped on stored events as ``request_id``."""

    @classmethod
    def generate(cls) -> "CorrelationId":
        return cls(str(uuid.uuid4()))


__all__ = ["FLUXSTORE_NAMESPACE", "CorrelationId", "EntityId"]
