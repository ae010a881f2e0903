"""Application registry – claim / release events."""

from __future__ import annotations

import dataclasses
from typing import ClassVar

from fluxstore.kernel.ddd.domain_event import DomainEvent


@dataclasses.dataclass(frozen=True, kw_only=True)
class ValueClaimed(DomainEvent):
    EVENT_NAME: ClassVar[str] = "registry.value_claimed"

    scope: str
    value: str
    claimant: str


@dataclasses.dataclass(frozen=True, kw_only=True)
class ValueReleased(DomainEvent):
    EVENT_NAME: ClassVar[str] = "registry.value_released"

    scope: str
    value: str
    claimant: str


__all__ = ["ValueClaimed", "ValueReleased"]
