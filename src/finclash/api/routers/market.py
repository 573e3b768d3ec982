"""Market data endpoints backed by the cached API client."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from finclash.api.deps import get_api_client
from finclash.api.schemas import (
    CacheClearResponse,
    CacheStatsResponse,
    MarketDataResponse,
    MarketStatsResponse,
    RateLimitStatsResponse,
)
from finclash.core.exceptions import ValidationError
from finclash.core.timezone import candle_range
from finclash.domain.models import DataType
from finclash.services import CachedAPIClient, normalize_symbol

router = APIRouter(prefix="/market", tags=["market"])

_DEFAULT_CANDLE_DAYS = 30


@router.get("/quote/{symbol}", response_model=MarketDataResponse)
async def get_quote(
    symbol: str,
    client: CachedAPIClient = Depends(get_api_client),
) -> MarketDataResponse:
    """Get the current quote (cached for one minute)."""
    data = await client.get_quote(symbol)
    return MarketDataResponse(symbol=normalize_symbol(symbol), data_type=DataType.QUOTE, data=data)


@router.get("/candles/{symbol}", response_model=MarketDataResponse)
async def get_candles(
    symbol: str,
    resolution: str = Query("D", description="Candle resolution (1, 5, 15, 30, 60, D, W, M)"),
    from_: Optional[str] = Query(None, alias="from", description="Start date or unix seconds"),
    to: Optional[str] = Query(None, description="End date or unix seconds"),
    client: CachedAPIClient = Depends(get_api_client),
) -> MarketDataResponse:
    """Get OHLC candles; defaults to the last 30 days."""
    try:
        from_ts, to_ts = candle_range(from_, to, _DEFAULT_CANDLE_DAYS)
    except (ValueError, OverflowError) as exc:
        raise ValidationError(f"Invalid candle range: {exc}") from exc
    data = await client.get_candles(symbol, resolution, from_ts, to_ts)
    return MarketDataResponse(symbol=normalize_symbol(symbol), data_type=DataType.CANDLES, data=data)


@router.get("/news/{symbol}", response_model=MarketDataResponse)
async def get_news(
    symbol: str,
    client: CachedAPIClient = Depends(get_api_client),
) -> MarketDataResponse:
    data = await client.get_news(symbol)
    return MarketDataResponse(symbol=normalize_symbol(symbol), data_type=DataType.NEWS, data=data)


@router.get("/company/{symbol}", response_model=MarketDataResponse)
async def get_company(
    symbol: str,
    client: CachedAPIClient = Depends(get_api_client),
) -> MarketDataResponse:
    data = await client.get_company_profile(symbol)
    return MarketDataResponse(symbol=normalize_symbol(symbol), data_type=DataType.COMPANY, data=data)


@router.get("/fundamentals/{symbol}", response_model=MarketDataResponse)
async def get_fundamentals(
    symbol: str,
    client: CachedAPIClient = Depends(get_api_client),
) -> MarketDataResponse:
    data = await client.get_fundamentals(symbol)
    return MarketDataResponse(
        symbol=normalize_symbol(symbol), data_type=DataType.FUNDAMENTALS, data=data
    )


@router.get("/search")
async def search(
    q: str = Query(..., min_length=1, description="Name or ticker prefix"),
    client: CachedAPIClient = Depends(get_api_client),
):
    """Search for symbols."""
    return await client.search(q)


@router.get("/stats", response_model=MarketStatsResponse)
async def get_stats(client: CachedAPIClient = Depends(get_api_client)) -> MarketStatsResponse:
    """Cache occupancy and rate limiter headroom."""
    return MarketStatsResponse(
        cache=CacheStatsResponse.model_validate(client.cache_stats()),
        rate_limit=RateLimitStatsResponse.model_validate(client.rate_limit_stats()),
    )


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(
    data_type: Optional[DataType] = Query(None, description="Only drop entries of this type"),
    client: CachedAPIClient = Depends(get_api_client),
) -> CacheClearResponse:
    """Drop cached responses and their durable copies."""
    if data_type is not None:
        removed = client.cache.invalidate_type(data_type)
    else:
        removed = len(client.cache)
        client.cache.clear()
    await client.cache.aflush()
    return CacheClearResponse(removed=removed)
