"""Testing generators – property-based test data."""
from fluxstore.testing.generators.strategies import (
    Operation,
    amount_strategy,
    apply_operations,
    budget_operations,
)

__all__ = ["Operation", "amount_strategy", "apply_operations", "budget_operations"]
