"""Pydantic schemas for market data endpoints."""

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel

from finclash.domain.models.enums import DataType


class MarketDataResponse(BaseModel):
    """Raw provider payload with the key it was cached under."""

    symbol: str
    data_type: DataType
    data: Any


class CacheStatsResponse(BaseModel):
    model_config = {"from_attributes": True}

    count: int
    by_type: dict[str, int]
    hit_rate: Decimal
    oldest_age: Optional[float] = None
    newest_age: Optional[float] = None


class RateLimitStatsResponse(BaseModel):
    model_config = {"from_attributes": True}

    remaining: int
    total: int
    time_until_reset: float
    provider: str


class MarketStatsResponse(BaseModel):
    """Cache and rate limiter snapshot."""

    cache: CacheStatsResponse
    rate_limit: RateLimitStatsResponse


class CacheClearResponse(BaseModel):
    removed: int
