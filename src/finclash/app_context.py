"""Application context wiring settings, storage and services together.

One AppContext owns the database, the market data cache, the rate limiter
and the API client for the lifetime of the process. The FastAPI app keeps
it on ``app.state``; tests build their own.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from finclash.config.settings import Settings, get_settings
from finclash.core.exceptions import FetchFailedError
from finclash.core.timezone import now_eastern
from finclash.providers import (
    HttpQuoteApiTransport,
    MappingPriceSource,
    QuoteApiTransport,
    StubQuoteApiTransport,
    extract_price,
)
from finclash.repositories.sqlalchemy import (
    Database,
    SqlAlchemyCacheStore,
    SqlAlchemyPortfolioRepository,
)
from finclash.services import AnalysisService, APICache, CachedAPIClient, RateLimiter

logger = logging.getLogger(__name__)


class AppContext:
    """Owns the long-lived services of one running application."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[QuoteApiTransport] = None,
        clock: Callable[[], datetime] = now_eastern,
    ):
        self.settings = settings or get_settings()

        self.database = Database(self.settings.get_database_url())
        self.cache_store = SqlAlchemyCacheStore(self.database.session_factory)
        self.cache = APICache(
            ttl_seconds=self.settings.get_ttl_table(),
            max_size=self.settings.cache_max_size,
            durable_types=self.settings.cache_durable_types,
            store=self.cache_store,
        )
        max_requests, window = self.settings.get_rate_limit()
        self.rate_limiter = RateLimiter(
            max_requests=max_requests,
            window_seconds=window,
            provider=self.settings.api_provider,
        )
        self.client = CachedAPIClient(
            transport=transport or self._build_transport(),
            cache=self.cache,
            rate_limiter=self.rate_limiter,
            provider=self.settings.api_provider,
            single_flight=self.settings.single_flight,
        )
        self.analysis = AnalysisService(starting_cash=self.settings.starting_cash)
        self.clock = clock
        self._portfolio_locks: dict[str, asyncio.Lock] = {}

    def _build_transport(self) -> QuoteApiTransport:
        if self.settings.use_stub_api:
            return StubQuoteApiTransport()
        return HttpQuoteApiTransport(
            base_url=self.settings.get_api_base_url(),
            api_token=self.settings.api_token,
            provider=self.settings.api_provider,
            timeout=self.settings.api_timeout_seconds,
        )

    def portfolio_repo(self, db: Session) -> SqlAlchemyPortfolioRepository:
        return SqlAlchemyPortfolioRepository(db)

    def startup(self) -> None:
        """Create tables and warm the cache from durable storage."""
        self.database.create_tables()
        loaded = self.cache.load_persistent()
        logger.info("Loaded %d durable cache entries", loaded)

    async def shutdown(self) -> None:
        """Flush durable cache entries and release connections."""
        await self.cache.aflush()
        await self.client.aclose()
        self.database.close()

    def portfolio_lock(self, portfolio_id: str) -> asyncio.Lock:
        """
        Lock serializing read-modify-write work on one portfolio.

        Held from loading a portfolio until its changes are saved, across
        any quote fetch in between.
        """
        lock = self._portfolio_locks.get(portfolio_id)
        if lock is None:
            lock = self._portfolio_locks[portfolio_id] = asyncio.Lock()
        return lock

    async def run_maintenance(self) -> tuple[int, int]:
        """Sweep expired entries and flush queued durable writes."""
        removed = self.cache.cleanup()
        flushed = await self.cache.aflush()
        return removed, flushed

    async def maintenance_loop(self) -> None:
        interval = self.settings.cache_cleanup_interval_seconds
        while True:
            await asyncio.sleep(interval)
            await self.run_maintenance()

    async def quote_prices(self, symbols: Iterable[str]) -> MappingPriceSource:
        """
        Price each symbol from the cached quote endpoint.

        Symbols whose quote fails or carries no usable price are left out, so
        valuing a position in them raises PriceUnavailableError.
        """
        symbols = sorted(set(symbols))
        results = await asyncio.gather(
            *(self.client.get_quote(symbol) for symbol in symbols),
            return_exceptions=True,
        )
        prices = {}
        for symbol, result in zip(symbols, results):
            if isinstance(result, FetchFailedError):
                continue
            if isinstance(result, BaseException):
                raise result
            price = extract_price(result)
            if price is not None:
                prices[symbol] = price
        return MappingPriceSource(prices)
