"""Application registry – UniquenessRegistry aggregate."""

from __future__ import annotations

from typing import Any

from fluxstore.application.event_sourcing.aggregate import Applier, EventSourcedAggregate
from fluxstore.application.event_sourcing.event_map import EventTypeMap
from fluxstore.application.event_sourcing.repository import EventSourcedRepository
from fluxstore.application.registry.events import ValueClaimed, ValueReleased
from fluxstore.kernel.errors import UniquenessViolationError


class UniquenessRegistry(EventSourcedAggregate):
    """Who currently holds one value within a scope.

    One registry stream exists per ``(scope, owner, value)``; its id is
    derived deterministically, so every attempt to claim the same value
    addresses the same stream and races are settled by the event store's
    optimistic version check.
    """

    aggregate_type = "uniqueness_registry"

    def __init__(self, aggregate_id: str) -> None:
        super().__init__(aggregate_id)
        self.scope: str | None = None
        self.value: str | None = None
        self.claimant: str | None = None

    def _appliers(self) -> dict[str, Applier]:
        return {
            ValueClaimed.EVENT_NAME: self._on_claimed,
            ValueReleased.EVENT_NAME: self._on_released,
        }

    def claimant_of(self) -> str | None:
        return self.claimant

    def claim(self, scope: str, value: str, claimant: str, owner_id: str | None = None) -> bool:
        """Claim the value for *claimant*; returns ``False`` when it already holds it."""
        if self.claimant == claimant:
            return False
        if self.claimant is not None:
            raise UniquenessViolationError(scope, value, self.claimant)
        self.raise_event(
            ValueClaimed(aggregate_id=self.id, owner_id=owner_id, scope=scope, value=value, claimant=claimant)
        )
        return True

    def release(self, claimant: str, owner_id: str | None = None) -> bool:
        """Release the claim held by *claimant*; anything else is a no-op."""
        if self.claimant is None or self.claimant != claimant:
            return False
        self.raise_event(
            ValueReleased(
                aggregate_id=self.id,
                owner_id=owner_id,
                scope=self.scope or "",
                value=self.value or "",
                claimant=claimant,
            )
        )
        return True

    def _on_claimed(self, event: ValueClaimed) -> None:
        self.scope = event.scope
        self.value = event.value
        self.claimant = event.claimant

    def _on_released(self, event: ValueReleased) -> None:
        self.claimant = None

    def snapshot_state(self) -> dict[str, Any]:
        return {"scope": self.scope, "value": self.value, "claimant": self.claimant}

    def restore_state(self, data: dict[str, Any]) -> None:
        self.scope = data.get("scope")
        self.value = data.get("value")
        self.claimant = data.get("claimant")


class RegistryRepository(EventSourcedRepository[UniquenessRegistry]):
    def _aggregate_class(self) -> type[UniquenessRegistry]:
        return UniquenessRegistry


def register_registry(event_map: EventTypeMap) -> EventTypeMap:
    """Add the registry aggregate and its events to *event_map*."""
    event_map.register_aggregate(UniquenessRegistry)
    event_map.register(ValueClaimed, aggregate=UniquenessRegistry)
    event_map.register(ValueReleased, aggregate=UniquenessRegistry)
    return event_map


__all__ = ["RegistryRepository", "UniquenessRegistry", "register_registry"]
