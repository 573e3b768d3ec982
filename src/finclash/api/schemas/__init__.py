"""API request and response schemas."""

from finclash.api.schemas.portfolio import (
    PortfolioCreate,
    PositionResponse,
    ShortPositionResponse,
    TradeResponse,
    PortfolioResponse,
    PortfolioListResponse,
    TradeRequest,
    TradeResultResponse,
    PositionValuationResponse,
    ValuationResponse,
    MetricsResponse,
    AllocationItemResponse,
    AllocationResponse,
)
from finclash.api.schemas.market import (
    MarketDataResponse,
    CacheStatsResponse,
    RateLimitStatsResponse,
    MarketStatsResponse,
    CacheClearResponse,
)

__all__ = [
    "PortfolioCreate",
    "PositionResponse",
    "ShortPositionResponse",
    "TradeResponse",
    "PortfolioResponse",
    "PortfolioListResponse",
    "TradeRequest",
    "TradeResultResponse",
    "PositionValuationResponse",
    "ValuationResponse",
    "MetricsResponse",
    "AllocationItemResponse",
    "AllocationResponse",
    "MarketDataResponse",
    "CacheStatsResponse",
    "RateLimitStatsResponse",
    "MarketStatsResponse",
    "CacheClearResponse",
]
