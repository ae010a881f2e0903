"""Application registry – RegistryBuilder.

Enforces "this value is unique within a scope" across aggregates whose own
ids are random::

    builder = RegistryBuilder(registry_repo, scope="budget-name")
    await builder.ensure_available(new_name, owner=user_id, except_for=budget.id)
    await builder.rename(old_name, new_name, owner=user_id, claimant=budget.id)
    budget.rename(new_name)
    await budget_repo.save_all([budget, *builder.registries_to_persist()])

The primary aggregate and every touched registry must be saved in the same
``save_all`` call so they commit or fail together.
"""

from __future__ import annotations

from fluxstore.application.registry.aggregate import RegistryRepository, UniquenessRegistry
from fluxstore.kernel.errors import StreamNotFoundError, UniquenessViolationError
from fluxstore.kernel.types.ids import EntityId
from fluxstore.observability.logging import get_logger

logger = get_logger(__name__)


def normalise(value: str) -> str:
    return value.strip().casefold()


class RegistryBuilder:
    """Loads, checks and mutates registries for one request.

    Registries are kept for the lifetime of the builder, so a value claimed
    earlier in the same unit of work is seen as taken even though its event
    has not been persisted yet.  Create one builder per unit of work.
    """

    def __init__(self, repository: RegistryRepository, scope: str) -> None:
        self._repository = repository
        self._scope = scope
        self._registries: dict[str, UniquenessRegistry] = {}

    @property
    def scope(self) -> str:
        return self._scope

    def registry_id(self, owner: str | None, value: str) -> str:
        return EntityId.deterministic(f"{self._scope}:{owner or '*'}:{normalise(value)}").value

    async def load_or_create(self, registry_id: str) -> UniquenessRegistry:
        """Return the registry, or a fresh one when its stream does not exist.

        :class:`~fluxstore.kernel.errors.StreamEmptyError` is not caught: a
        stream that exists without events is a defect, not a free value.
        """
        registry = self._registries.get(registry_id)
        if registry is not None:
            return registry
        try:
            registry = await self._repository.load(registry_id)
        except StreamNotFoundError:
            registry = UniquenessRegistry(registry_id)
        self._registries[registry_id] = registry
        return registry

    async def ensure_available(self, value: str, owner: str | None, except_for: str | None = None) -> None:
        """Raise :class:`UniquenessViolationError` unless *value* is free or held by *except_for*."""
        registry = await self.load_or_create(self.registry_id(owner, value))
        claimant = registry.claimant_of()
        if claimant is not None and claimant != except_for:
            logger.info("registry.value_taken", scope=self._scope, owner=owner, claimant=claimant)
            raise UniquenessViolationError(self._scope, value, claimant)

    async def register(self, value: str, owner: str | None, claimant: str) -> None:
        await self.ensure_available(value, owner, except_for=claimant)
        registry = await self.load_or_create(self.registry_id(owner, value))
        registry.claim(self._scope, normalise(value), claimant, owner_id=owner)

    async def release(self, value: str, owner: str | None, claimant: str) -> None:
        """Release *claimant*'s hold on *value*; a never-persisted registry is left alone."""
        registry = await self.load_or_create(self.registry_id(owner, value))
        if registry.version == 0 and not registry.pending_events:
            return
        registry.release(claimant, owner_id=owner)

    async def rename(self, old: str | None, new: str, owner: str | None, claimant: str) -> None:
        """Move *claimant*'s claim from *old* to *new* (both registries may change)."""
        if old is not None and self.registry_id(owner, old) == self.registry_id(owner, new):
            await self.register(new, owner, claimant)
            return
        await self.ensure_available(new, owner, except_for=claimant)
        if old is not None:
            await self.release(old, owner, claimant)
        await self.register(new, owner, claimant)

    def registries_to_persist(self) -> list[UniquenessRegistry]:
        return [r for r in self._registries.values() if r.pending_events]


__all__ = ["RegistryBuilder", "normalise"]
