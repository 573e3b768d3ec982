"""Market data API client with caching and rate limiting."""

import asyncio
import logging
import re
from typing import Any, Optional

from finclash.core.exceptions import FetchFailedError, ValidationError
from finclash.domain.models import DataType
from finclash.domain.views import CacheStats, RateLimitStats
from finclash.providers.market_data_provider import QuoteApiTransport
from finclash.services.api_cache import APICache
from finclash.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

SYMBOL_PATTERN = re.compile(r"^[A-Z][A-Z0-9.\-]{0,9}$")


def normalize_symbol(symbol: str) -> str:
    """Uppercase and validate a ticker symbol."""
    normalized = (symbol or "").strip().upper()
    if not SYMBOL_PATTERN.match(normalized):
        raise ValidationError(f"Invalid symbol: {symbol!r}")
    return normalized


class CachedAPIClient:
    """
    Client for quote, candle, news and profile data.

    Every request is fingerprinted into a cache key. A hit returns cached
    data without touching the network or the rate limiter. A miss waits
    for a rate limiter slot, records the request as it is dispatched,
    fetches once and caches the result. Failed fetches are raised as
    FetchFailedError and never cached.

    With ``single_flight`` enabled, concurrent misses on the same key share
    one outbound request; otherwise each caller fetches independently.
    """

    def __init__(
        self,
        transport: QuoteApiTransport,
        cache: APICache,
        rate_limiter: RateLimiter,
        provider: str = "finnhub",
        single_flight: bool = False,
    ):
        self._transport = transport
        self._cache = cache
        self._limiter = rate_limiter
        self._provider = provider
        self._single_flight = single_flight
        self._in_flight: dict[str, asyncio.Future] = {}

    @property
    def cache(self) -> APICache:
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    async def get_quote(self, symbol: str) -> Any:
        """Fetch a real-time quote."""
        symbol = normalize_symbol(symbol)
        return await self._cached_fetch(
            f"quote_{symbol}", DataType.QUOTE, "/quote", {"symbol": symbol}
        )

    async def get_candles(self, symbol: str, resolution: str, from_ts: int, to_ts: int) -> Any:
        """Fetch OHLC candles for a unix-seconds time range."""
        symbol = normalize_symbol(symbol)
        if from_ts > to_ts:
            raise ValidationError(f"Candle range start {from_ts} is after end {to_ts}")
        return await self._cached_fetch(
            f"candles_{symbol}_{resolution}_{from_ts}_{to_ts}",
            DataType.CANDLES,
            "/stock/candle",
            {"symbol": symbol, "resolution": resolution, "from": from_ts, "to": to_ts},
        )

    async def get_news(self, symbol: str) -> Any:
        """Fetch recent company news."""
        symbol = normalize_symbol(symbol)
        return await self._cached_fetch(
            f"news_{symbol}", DataType.NEWS, "/company-news", {"symbol": symbol}
        )

    async def get_company_profile(self, symbol: str) -> Any:
        """Fetch the company profile."""
        symbol = normalize_symbol(symbol)
        return await self._cached_fetch(
            f"company_{symbol}", DataType.COMPANY, "/stock/profile2", {"symbol": symbol}
        )

    async def get_fundamentals(self, symbol: str) -> Any:
        """Fetch basic financial metrics."""
        symbol = normalize_symbol(symbol)
        return await self._cached_fetch(
            f"fundamentals_{symbol}",
            DataType.FUNDAMENTALS,
            "/stock/metric",
            {"symbol": symbol, "metric": "all"},
        )

    async def search(self, query: str) -> Any:
        """Search symbols by name or ticker prefix."""
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query must not be empty")
        return await self._cached_fetch(
            f"search_{query.lower()}", DataType.SEARCH, "/search", {"q": query}
        )

    def rate_limit_stats(self) -> RateLimitStats:
        return self._limiter.stats(provider=self._provider)

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def _cached_fetch(
        self,
        key: str,
        data_type: DataType,
        endpoint: str,
        params: dict[str, Any],
    ) -> Any:
        cached = self._cache.get(key, data_type)
        if cached is not None:
            return cached

        if not self._single_flight:
            return await self._fetch_and_store(key, data_type, endpoint, params)

        pending = self._in_flight.get(key)
        if pending is not None:
            # shield: one waiter being cancelled must not cancel the shared fetch
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._fetch_and_store(key, data_type, endpoint, params))
        self._in_flight[key] = task
        task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self,
        key: str,
        data_type: DataType,
        endpoint: str,
        params: dict[str, Any],
    ) -> Any:
        await self._limiter.wait_for_slot()
        self._limiter.record()
        try:
            data = await self._transport.fetch(endpoint, params)
        except FetchFailedError as exc:
            logger.warning("Market data fetch failed (%s): %s", key, exc.message)
            raise

        if data is None:
            raise FetchFailedError(endpoint, "Empty response body")

        self._cache.set(key, data, data_type)
        return data
