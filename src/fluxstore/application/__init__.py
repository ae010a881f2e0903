"""Application – event sourcing, registries, projections and erasure."""
