"""
Pytest configuration and fixtures for FinClash tests.

This module provides:
- Controllable clocks (wall-clock datetimes and monotonic seconds)
- In-memory SQLite database fixtures
- Deterministic quote API transports
- Cache, rate limiter, client and ledger fixtures
- A FastAPI TestClient wired to an in-memory app
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from finclash.config.settings import Settings, reset_settings
from finclash.core.exceptions import FetchFailedError
from finclash.core.timezone import EASTERN_TZ
from finclash.domain.models import Portfolio
from finclash.main import create_app
from finclash.providers import MappingPriceSource, StubQuoteApiTransport
from finclash.repositories.sqlalchemy import (
    Database,
    SqlAlchemyCacheStore,
    SqlAlchemyPortfolioRepository,
)
from finclash.services import (
    AnalysisService,
    APICache,
    CachedAPIClient,
    PortfolioLedger,
    RateLimiter,
    create_portfolio,
)


# =============================================================================
# TIME HELPERS
# =============================================================================


def eastern_datetime(
    year: int,
    month: int,
    day: int,
    hour: int = 10,
    minute: int = 0,
    second: int = 0,
) -> datetime:
    """Create a localized datetime in US/Eastern timezone."""
    return EASTERN_TZ.localize(datetime(year, month, day, hour, minute, second))


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """
    Monotonic seconds clock with a matching async sleep.

    ``sleep`` advances the clock instead of blocking, so rate limiter waits
    complete instantly while still moving time forward.
    """

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def run(coro):
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run(coro)


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed 'now' timestamp for deterministic tests."""
    return eastern_datetime(2024, 6, 15, 14, 30, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def database():
    """Shared in-memory SQLite database with all tables created."""
    reset_settings()
    db = Database("sqlite:///:memory:")
    db.create_tables()
    yield db
    db.drop_tables()
    db.close()


@pytest.fixture(scope="function")
def test_session(database):
    """Create test database session."""
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cache_store(database) -> SqlAlchemyCacheStore:
    return SqlAlchemyCacheStore(database.session_factory)


@pytest.fixture
def portfolio_repo(test_session) -> SqlAlchemyPortfolioRepository:
    return SqlAlchemyPortfolioRepository(test_session)


# =============================================================================
# MARKET DATA FIXTURES
# =============================================================================


class RecordingTransport:
    """
    Transport returning canned payloads per endpoint.

    Payloads may be exceptions (raised) or callables taking params. Every
    call is recorded, and an optional ``gate`` event holds fetches open so
    tests can overlap concurrent requests.
    """

    def __init__(self, responses: Optional[dict[str, Any]] = None):
        self.responses = responses or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.gate = None
        self.closed = False

    async def fetch(self, endpoint: str, params: dict[str, Any]) -> Any:
        self.calls.append((endpoint, dict(params)))
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.get(endpoint)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(params)
        if response is None and endpoint not in self.responses:
            raise FetchFailedError(endpoint, "API Error: 404", status_code=404)
        return response

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def stub_transport() -> StubQuoteApiTransport:
    """Provide stub transport with fixed seed."""
    return StubQuoteApiTransport(seed=42)


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport(
        {
            "/quote": lambda params: {"c": 185.5, "pc": 184.25, "symbol": params["symbol"]},
            "/company-news": [{"headline": "Earnings beat"}],
            "/stock/profile2": {"name": "Apple Inc", "finnhubIndustry": "Technology"},
            "/stock/metric": {"metric": {"peTTM": 29.1}},
            "/stock/candle": {"s": "ok", "c": [1.0, 2.0]},
            "/search": {"count": 1, "result": [{"symbol": "AAPL"}]},
        }
    )


@pytest.fixture
def api_cache(clock) -> APICache:
    """In-memory cache with no durable store and a fake clock."""
    return APICache(clock=clock)


@pytest.fixture
def rate_limiter(monotonic) -> RateLimiter:
    return RateLimiter(
        max_requests=60,
        window_seconds=60.0,
        clock=monotonic,
        sleep=monotonic.sleep,
    )


@pytest.fixture
def api_client(recording_transport, api_cache, rate_limiter) -> CachedAPIClient:
    return CachedAPIClient(
        transport=recording_transport,
        cache=api_cache,
        rate_limiter=rate_limiter,
    )


# =============================================================================
# PORTFOLIO FIXTURES
# =============================================================================


@pytest.fixture
def portfolio() -> Portfolio:
    """Fresh portfolio with $100,000 cash."""
    return create_portfolio("Test Portfolio")


@pytest.fixture
def ledger(portfolio, clock) -> PortfolioLedger:
    return PortfolioLedger(portfolio, clock=clock)


@pytest.fixture
def prices() -> MappingPriceSource:
    return MappingPriceSource(
        {
            "AAPL": Decimal("185.50"),
            "MSFT": Decimal("378.25"),
            "TSLA": Decimal("248.75"),
            "JPM": Decimal("198.30"),
            "XOM": Decimal("110.00"),
        }
    )


@pytest.fixture
def analysis_service() -> AnalysisService:
    return AnalysisService()


# =============================================================================
# API FIXTURES
# =============================================================================


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at an in-memory database and the stub API."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        database_url="sqlite:///:memory:",
        use_stub_api=True,
        cache_cleanup_interval_seconds=3600,
    )


@pytest.fixture
def client(test_settings, stub_transport) -> TestClient:
    """Create test client running the full application lifespan."""
    app = create_app(test_settings, transport=stub_transport)
    with TestClient(app) as test_client:
        yield test_client
