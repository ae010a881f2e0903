"""Testing fakes – in-memory doubles and a sample budget domain."""
from fluxstore.kernel.time import FrozenClock
from fluxstore.testing.fakes.budget import (
    Budget,
    BudgetCreated,
    BudgetCredited,
    BudgetDebited,
    BudgetRenamed,
    BudgetRepository,
    budget_event_map,
)
from fluxstore.testing.fakes.bus import FailingSubscriber, RecordingSubscriber
from fluxstore.testing.fakes.projection import BudgetSummaryProjection, InMemoryProjection
from fluxstore.testing.fakes.uow import InMemoryUnitOfWork

__all__ = [
    "Budget",
    "BudgetCreated",
    "BudgetCredited",
    "BudgetDebited",
    "BudgetRenamed",
    "BudgetRepository",
    "BudgetSummaryProjection",
    "FailingSubscriber",
    "FrozenClock",
    "InMemoryProjection",
    "InMemoryUnitOfWork",
    "RecordingSubscriber",
    "budget_event_map",
]
