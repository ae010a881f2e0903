"""Testing support – fakes, fixtures and property-based generators.

Enable the fixtures in ``pyproject.toml``::

    [tool.pytest.ini_options]
    addopts = "-p fluxstore.testing.fixtures"
"""

from fluxstore.testing.fakes import (
    Budget,
    BudgetRepository,
    BudgetSummaryProjection,
    FailingSubscriber,
    FrozenClock,
    InMemoryProjection,
    InMemoryUnitOfWork,
    RecordingSubscriber,
    budget_event_map,
)

__all__ = [
    "Budget",
    "BudgetRepository",
    "BudgetSummaryProjection",
    "FailingSubscriber",
    "FrozenClock",
    "InMemoryProjection",
    "InMemoryUnitOfWork",
    "RecordingSubscriber",
    "budget_event_map",
]
