"""Stub quote API transport for offline/testing use."""

import random
import time
from decimal import Decimal
from typing import Any

from finclash.core.exceptions import FetchFailedError

# Deterministic fake prices (current, previous close) for common symbols
_STUB_PRICES: dict[str, tuple[Decimal, Decimal]] = {
    "AAPL": (Decimal("178.50"), Decimal("177.25")),
    "GOOGL": (Decimal("142.75"), Decimal("141.50")),
    "MSFT": (Decimal("378.25"), Decimal("376.80")),
    "AMZN": (Decimal("178.50"), Decimal("177.25")),
    "TSLA": (Decimal("248.75"), Decimal("250.10")),
    "NVDA": (Decimal("485.25"), Decimal("482.50")),
    "META": (Decimal("505.50"), Decimal("502.75")),
    "NFLX": (Decimal("610.40"), Decimal("605.10")),
    "JPM": (Decimal("198.30"), Decimal("197.60")),
    "SPY": (Decimal("485.25"), Decimal("484.10")),
}

_STUB_PROFILES: dict[str, dict[str, Any]] = {
    "AAPL": {"name": "Apple Inc", "finnhubIndustry": "Technology", "exchange": "NASDAQ"},
    "MSFT": {"name": "Microsoft Corp", "finnhubIndustry": "Technology", "exchange": "NASDAQ"},
    "TSLA": {"name": "Tesla Inc", "finnhubIndustry": "Automobiles", "exchange": "NASDAQ"},
    "JPM": {"name": "JPMorgan Chase & Co", "finnhubIndustry": "Banking", "exchange": "NYSE"},
}


class StubQuoteApiTransport:
    """
    Transport returning deterministic Finnhub-shaped payloads.

    Uses predefined prices for common symbols; generates seeded random
    prices for unknown symbols. Counts calls so tests can assert on
    network usage.
    """

    def __init__(self, seed: int = 42):
        self._rng = random.Random(seed)
        self._generated: dict[str, tuple[Decimal, Decimal]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def fetch(self, endpoint: str, params: dict[str, Any]) -> Any:
        self.calls.append((endpoint, dict(params)))
        symbol = str(params.get("symbol", "")).upper()

        if endpoint == "/quote":
            return self._quote(symbol)
        if endpoint == "/stock/candle":
            return self._candles(symbol, int(params["from"]), int(params["to"]))
        if endpoint == "/company-news":
            return [
                {
                    "headline": f"{symbol} shares move ahead of earnings",
                    "source": "Stub Wire",
                    "datetime": int(time.time()),
                    "related": symbol,
                }
            ]
        if endpoint == "/stock/profile2":
            profile = {"name": symbol, "finnhubIndustry": "Other", "exchange": "NYSE"}
            profile.update(_STUB_PROFILES.get(symbol, {}))
            return {"ticker": symbol, **profile}
        if endpoint == "/stock/metric":
            last, _ = self._prices(symbol)
            return {"symbol": symbol, "metric": {"peTTM": 25.0, "52WeekHigh": float(last * Decimal("1.2"))}}
        if endpoint == "/search":
            query = str(params.get("q", "")).upper()
            matches = sorted(s for s in _STUB_PRICES if s.startswith(query))
            return {"count": len(matches), "result": [{"symbol": s, "description": s} for s in matches]}

        raise FetchFailedError(endpoint, "API Error: 404", status_code=404)

    async def aclose(self) -> None:
        return None

    def _prices(self, symbol: str) -> tuple[Decimal, Decimal]:
        if symbol in _STUB_PRICES:
            return _STUB_PRICES[symbol]
        if symbol not in self._generated:
            base_price = Decimal(str(50 + self._rng.random() * 200))
            last_price = base_price.quantize(Decimal("0.01"))
            change_pct = Decimal(str((self._rng.random() - 0.5) * 0.04))
            prev_close = (last_price / (1 + change_pct)).quantize(Decimal("0.01"))
            self._generated[symbol] = (last_price, prev_close)
        return self._generated[symbol]

    def _quote(self, symbol: str) -> dict[str, Any]:
        last, prev = self._prices(symbol)
        change = last - prev
        return {
            "c": float(last),
            "pc": float(prev),
            "d": float(change),
            "dp": float((change / prev * 100).quantize(Decimal("0.01"))),
            "t": int(time.time()),
        }

    def _candles(self, symbol: str, from_ts: int, to_ts: int) -> dict[str, Any]:
        last, prev = self._prices(symbol)
        day = 24 * 60 * 60
        stamps = list(range(from_ts, to_ts + 1, day)) or [from_ts]
        closes = []
        for i in range(len(stamps)):
            # Walk linearly from prev close to last price
            frac = Decimal(i) / Decimal(max(len(stamps) - 1, 1))
            closes.append(float((prev + (last - prev) * frac).quantize(Decimal("0.01"))))
        return {"s": "ok", "t": stamps, "c": closes, "o": closes, "h": closes, "l": closes}
