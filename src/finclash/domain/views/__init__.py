"""View models for service outputs."""

from finclash.domain.views.portfolio import (
    TradeValidation,
    PositionValuation,
    PortfolioValuationView,
    PortfolioMetricsView,
    AllocationItem,
)
from finclash.domain.views.market import CacheStats, RateLimitStats

__all__ = [
    "TradeValidation",
    "PositionValuation",
    "PortfolioValuationView",
    "PortfolioMetricsView",
    "AllocationItem",
    "CacheStats",
    "RateLimitStats",
]
