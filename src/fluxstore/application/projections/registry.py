"""Application projections – ProjectionRegistry."""

from __future__ import annotations

from typing import Iterable, Iterator

from fluxstore.application.projections.base import Projection
from fluxstore.kernel.errors import ProjectionNotFoundError


class ProjectionRegistry:
    """Projections by name; names are unique."""

    def __init__(self, projections: Iterable[Projection] = ()) -> None:
        self._projections: dict[str, Projection] = {}
        for projection in projections:
            self.register(projection)

    def register(self, projection: Projection) -> None:
        if projection.name in self._projections:
            raise ValueError(f"Projection '{projection.name}' is already registered")
        self._projections[projection.name] = projection

    def get(self, name: str) -> Projection:
        try:
            return self._projections[name]
        except KeyError:
            raise ProjectionNotFoundError(name) from None

    def names(self) -> list[str]:
        return sorted(self._projections)

    def __contains__(self, name: object) -> bool:
        return name in self._projections

    def __iter__(self) -> Iterator[Projection]:
        return iter(self._projections[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._projections)


__all__ = ["ProjectionRegistry"]
