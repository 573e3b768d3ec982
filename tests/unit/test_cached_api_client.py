"""
Unit tests for CachedAPIClient and the quote API transports.

Tests cover:
- Cache keys and hit/miss behavior per endpoint
- Rate limiter interaction (hits are free, misses are recorded at dispatch)
- Fetch failures are surfaced and never cached
- Optional single-flight collapsing of concurrent misses
- HttpQuoteApiTransport against httpx.MockTransport
"""

import asyncio

import httpx
import pytest

from finclash.core.exceptions import FetchFailedError, ValidationError
from finclash.domain.models import DataType
from finclash.providers import HttpQuoteApiTransport, StubQuoteApiTransport, extract_price
from finclash.services import APICache, CachedAPIClient, RateLimiter, normalize_symbol

from tests.conftest import FakeClock, FakeMonotonic, RecordingTransport, run


# =============================================================================
# SYMBOL VALIDATION TESTS
# =============================================================================


class TestNormalizeSymbol:
    @pytest.mark.parametrize("raw,expected", [("aapl", "AAPL"), (" msft ", "MSFT"), ("BRK.B", "BRK.B")])
    def test_valid_symbols(self, raw, expected):
        assert normalize_symbol(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "1ABC", "AAPL$", "ABCDEFGHIJK", None])
    def test_invalid_symbols(self, raw):
        with pytest.raises(ValidationError):
            normalize_symbol(raw)


# =============================================================================
# CACHING TESTS
# =============================================================================


class TestCaching:
    """Tests for cache-first fetching."""

    def test_quote_miss_then_hit(
        self,
        api_client: CachedAPIClient,
        recording_transport: RecordingTransport,
        api_cache: APICache,
    ):
        """
        GIVEN an empty cache
        WHEN get_quote("aapl") is called twice
        THEN the API is called once AND the result is cached under quote_AAPL
        """
        first = run(api_client.get_quote("aapl"))
        second = run(api_client.get_quote("AAPL"))

        assert first == second
        assert recording_transport.calls == [("/quote", {"symbol": "AAPL"})]
        assert "quote_AAPL" in api_cache

    def test_hit_does_not_consume_rate_limit(
        self,
        api_client: CachedAPIClient,
        rate_limiter: RateLimiter,
    ):
        run(api_client.get_quote("AAPL"))
        remaining_after_miss = rate_limiter.remaining()

        for _ in range(5):
            run(api_client.get_quote("AAPL"))

        assert remaining_after_miss == 59
        assert rate_limiter.remaining() == 59

    def test_expired_entry_refetched(
        self,
        api_client: CachedAPIClient,
        recording_transport: RecordingTransport,
        clock: FakeClock,
    ):
        run(api_client.get_quote("AAPL"))
        clock.advance(61)

        run(api_client.get_quote("AAPL"))

        assert len(recording_transport.calls) == 2

    def test_candle_key_includes_range(
        self,
        api_client: CachedAPIClient,
        api_cache: APICache,
        recording_transport: RecordingTransport,
    ):
        run(api_client.get_candles("AAPL", "D", 1700000000, 1700864000))
        run(api_client.get_candles("AAPL", "D", 1700000000, 1700950400))

        assert "candles_AAPL_D_1700000000_1700864000" in api_cache
        assert "candles_AAPL_D_1700000000_1700950400" in api_cache
        assert len(recording_transport.calls) == 2

    def test_candles_reversed_range_rejected(self, api_client: CachedAPIClient):
        with pytest.raises(ValidationError):
            run(api_client.get_candles("AAPL", "D", 200, 100))

    @pytest.mark.parametrize(
        "method,key,data_type",
        [
            ("get_news", "news_AAPL", DataType.NEWS),
            ("get_company_profile", "company_AAPL", DataType.COMPANY),
            ("get_fundamentals", "fundamentals_AAPL", DataType.FUNDAMENTALS),
        ],
    )
    def test_symbol_endpoints_cache_by_type(self, api_client, api_cache, method, key, data_type):
        data = run(getattr(api_client, method)("aapl"))

        assert api_cache.get(key, data_type) == data

    def test_search_key_is_case_insensitive(
        self,
        api_client: CachedAPIClient,
        recording_transport: RecordingTransport,
    ):
        run(api_client.search("Apple"))
        run(api_client.search("apple"))

        assert len(recording_transport.calls) == 1

    def test_empty_search_rejected(self, api_client: CachedAPIClient):
        with pytest.raises(ValidationError):
            run(api_client.search("  "))

    def test_invalid_symbol_never_reaches_network(
        self,
        api_client: CachedAPIClient,
        recording_transport: RecordingTransport,
    ):
        with pytest.raises(ValidationError):
            run(api_client.get_quote("not a symbol"))

        assert recording_transport.calls == []


# =============================================================================
# FAILURE TESTS
# =============================================================================


class TestFailures:
    """Tests for failed fetches."""

    def test_failure_raised_and_not_cached(
        self,
        api_cache: APICache,
        rate_limiter: RateLimiter,
    ):
        """
        GIVEN an API returning HTTP 429 for quotes
        WHEN get_quote is called
        THEN FetchFailedError is raised, nothing is cached,
        AND the attempt still counts against the rate limit
        """
        transport = RecordingTransport(
            {"/quote": FetchFailedError("/quote", "API Error: 429", status_code=429)}
        )
        client = CachedAPIClient(transport, api_cache, rate_limiter)

        with pytest.raises(FetchFailedError) as exc_info:
            run(client.get_quote("AAPL"))

        assert exc_info.value.status_code == 429
        assert "quote_AAPL" not in api_cache
        assert rate_limiter.remaining() == 59

    def test_empty_body_is_a_failure(self, api_cache, rate_limiter):
        transport = RecordingTransport({"/quote": None})
        client = CachedAPIClient(transport, api_cache, rate_limiter)

        with pytest.raises(FetchFailedError):
            run(client.get_quote("AAPL"))

        assert len(api_cache) == 0


# =============================================================================
# RATE LIMIT TESTS
# =============================================================================


class TestRateLimitedFetching:
    def test_misses_wait_when_limit_reached(self, clock: FakeClock):
        """
        GIVEN a limit of 2 requests per 60s
        WHEN 3 distinct quotes are fetched
        THEN the third waits for the window to roll over before dispatch
        """
        monotonic = FakeMonotonic()
        limiter = RateLimiter(2, 60.0, clock=monotonic, sleep=monotonic.sleep)
        transport = RecordingTransport({"/quote": {"c": 10.0}})
        client = CachedAPIClient(transport, APICache(clock=clock), limiter)

        async def fetch_all():
            for symbol in ("AAPL", "MSFT", "TSLA"):
                await client.get_quote(symbol)

        run(fetch_all())

        assert len(transport.calls) == 3
        assert sum(monotonic.sleeps) == pytest.approx(60.0)

    def test_rate_limit_stats_uses_provider(self, api_cache, rate_limiter, recording_transport):
        client = CachedAPIClient(recording_transport, api_cache, rate_limiter, provider="alphavantage")

        stats = client.rate_limit_stats()

        assert stats.provider == "alphavantage"
        assert stats.total == 60

    def test_aclose_closes_transport(self, api_client, recording_transport):
        run(api_client.aclose())

        assert recording_transport.closed is True


# =============================================================================
# SINGLE-FLIGHT TESTS
# =============================================================================


class TestSingleFlight:
    def _concurrent_quotes(self, client: CachedAPIClient, transport: RecordingTransport, n: int):
        async def scenario():
            transport.gate = asyncio.Event()
            tasks = [asyncio.ensure_future(client.get_quote("AAPL")) for _ in range(n)]
            await asyncio.sleep(0.01)
            transport.gate.set()
            return await asyncio.gather(*tasks)

        return run(scenario())

    def test_concurrent_misses_share_one_request(self, recording_transport, api_cache, rate_limiter):
        client = CachedAPIClient(recording_transport, api_cache, rate_limiter, single_flight=True)

        results = self._concurrent_quotes(client, recording_transport, 5)

        assert len(recording_transport.calls) == 1
        assert all(r == results[0] for r in results)
        assert rate_limiter.remaining() == 59

    def test_without_single_flight_each_miss_fetches(self, recording_transport, api_cache, rate_limiter):
        client = CachedAPIClient(recording_transport, api_cache, rate_limiter)

        self._concurrent_quotes(client, recording_transport, 3)

        assert len(recording_transport.calls) == 3

    def test_shared_failure_reaches_every_waiter(self, api_cache, rate_limiter):
        transport = RecordingTransport({"/quote": FetchFailedError("/quote", "API Error: 500", 500)})
        client = CachedAPIClient(transport, api_cache, rate_limiter, single_flight=True)

        async def scenario():
            transport.gate = asyncio.Event()
            tasks = [asyncio.ensure_future(client.get_quote("AAPL")) for _ in range(3)]
            await asyncio.sleep(0.01)
            transport.gate.set()
            return await asyncio.gather(*tasks, return_exceptions=True)

        results = run(scenario())

        assert len(transport.calls) == 1
        assert all(isinstance(r, FetchFailedError) for r in results)


# =============================================================================
# TRANSPORT TESTS
# =============================================================================


class TestHttpTransport:
    """Tests for HttpQuoteApiTransport using httpx.MockTransport."""

    def _transport(self, handler, provider: str = "finnhub") -> HttpQuoteApiTransport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpQuoteApiTransport(
            base_url="https://api.example.test/v1/",
            api_token="secret",
            provider=provider,
            client=client,
        )

    def test_success_returns_json_and_sends_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"c": 185.5})

        transport = self._transport(handler)

        data = run(transport.fetch("/quote", {"symbol": "AAPL"}))

        assert data == {"c": 185.5}
        assert seen["url"].startswith("https://api.example.test/v1/quote?")
        assert "symbol=AAPL" in seen["url"]
        assert "token=secret" in seen["url"]

    def test_alphavantage_uses_apikey_param(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={})

        run(self._transport(handler, provider="alphavantage").fetch("/quote", {"symbol": "AAPL"}))

        assert seen["params"]["apikey"] == "secret"

    def test_non_2xx_raises_with_status(self):
        transport = self._transport(lambda request: httpx.Response(429, json={"error": "limit"}))

        with pytest.raises(FetchFailedError) as exc_info:
            run(transport.fetch("/quote", {"symbol": "AAPL"}))

        assert exc_info.value.status_code == 429

    def test_network_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchFailedError) as exc_info:
            run(self._transport(handler).fetch("/quote", {"symbol": "AAPL"}))

        assert exc_info.value.status_code is None

    def test_invalid_json_raises(self):
        transport = self._transport(lambda request: httpx.Response(200, content=b"<html>"))

        with pytest.raises(FetchFailedError):
            run(transport.fetch("/quote", {"symbol": "AAPL"}))


class TestStubTransport:
    def test_known_symbol_quote(self, stub_transport: StubQuoteApiTransport):
        quote = run(stub_transport.fetch("/quote", {"symbol": "AAPL"}))

        assert extract_price(quote) == extract_price({"c": 178.5})
        assert quote["pc"] == 177.25

    def test_unknown_symbol_is_seeded(self):
        first = run(StubQuoteApiTransport(seed=7).fetch("/quote", {"symbol": "ZZZZ"}))
        second = run(StubQuoteApiTransport(seed=7).fetch("/quote", {"symbol": "ZZZZ"}))

        assert first["c"] == second["c"]

    def test_unknown_endpoint_fails(self, stub_transport: StubQuoteApiTransport):
        with pytest.raises(FetchFailedError):
            run(stub_transport.fetch("/crypto/candle", {}))


class TestExtractPrice:
    @pytest.mark.parametrize("quote", [None, {}, {"c": 0}, {"c": -1}, {"c": "abc"}, [1, 2]])
    def test_unusable_quotes(self, quote):
        assert extract_price(quote) is None
