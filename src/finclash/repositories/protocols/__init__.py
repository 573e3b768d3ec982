"""Repository protocol definitions (interfaces)."""

from finclash.repositories.protocols.cache_store import DurableCacheStore
from finclash.repositories.protocols.portfolio_repo import PortfolioRepository

__all__ = [
    "DurableCacheStore",
    "PortfolioRepository",
]
