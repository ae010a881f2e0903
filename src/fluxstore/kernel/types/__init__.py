"""Kernel types – identifier value objects."""
from fluxstore.kernel.types.ids import FLUXSTORE_NAMESPACE, CorrelationId, EntityId

__all__ = ["FLUXSTORE_NAMESPACE", "CorrelationId", "EntityId"]
