"""Repository layer - data access abstractions and implementations."""

from finclash.repositories.protocols import (
    DurableCacheStore,
    PortfolioRepository,
)

__all__ = [
    "DurableCacheStore",
    "PortfolioRepository",
]
