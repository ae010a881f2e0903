"""Testing fakes – InMemoryUnitOfWork."""
from __future__ import annotations

from typing import Callable

from fluxstore.kernel.ddd.unit_of_work import UnitOfWork


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work whose participants register undo actions.

    Writes happen immediately; :meth:`rollback` runs the undo actions in
    reverse order, :meth:`commit` forgets them.
    """

    def __init__(self) -> None:
        self._undo: list[Callable[[], None]] = []
        self.commits = 0
        self.rollbacks = 0

    def on_rollback(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    async def commit(self) -> None:
        self._undo.clear()
        self.commits += 1

    async def rollback(self) -> None:
        for undo in reversed(self._undo):
            undo()
        self._undo.clear()
        self.rollbacks += 1


__all__ = ["InMemoryUnitOfWork"]
