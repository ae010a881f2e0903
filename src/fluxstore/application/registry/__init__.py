"""Application registry – cross-aggregate uniqueness built on event streams."""
from fluxstore.application.registry.aggregate import RegistryRepository, UniquenessRegistry, register_registry
from fluxstore.application.registry.builder import RegistryBuilder, normalise
from fluxstore.application.registry.events import ValueClaimed, ValueReleased

__all__ = [
    "RegistryBuilder",
    "RegistryRepository",
    "UniquenessRegistry",
    "ValueClaimed",
    "ValueReleased",
    "normalise",
    "register_registry",
]
