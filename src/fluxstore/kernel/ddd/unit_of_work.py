"""Unit of Work port — transactional boundary for read-model writes."""

from __future__ import annotations

import abc
from typing import Any


class UnitOfWork(abc.ABC):
    """Port: transactional unit of work.

    Used as an async context manager: commits on a clean exit, rolls back
    when the block raises.  The exception is never suppressed.
    """

    @abc.abstractmethod
    async def commit(self) -> None: ...

    @abc.abstractmethod
    async def rollback(self) -> None: ...

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()


__all__ = ["UnitOfWork"]
