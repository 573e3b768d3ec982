"""
Unit tests for AnalysisService and its metric helpers.

Tests cover:
- Daily returns, standard deviation and max drawdown
- Win rate approximation over closing trades
- Portfolio valuation breakdown
- Performance metrics
- Sector allocation
"""

from decimal import Decimal

import pytest

from finclash.core.exceptions import PriceUnavailableError
from finclash.domain.models import TradeRecord, TradeType
from finclash.providers import MappingPriceSource
from finclash.services import AnalysisService, PortfolioLedger
from finclash.services.analysis_service import (
    daily_returns,
    max_drawdown,
    standard_deviation,
    win_rate,
)

from tests.conftest import eastern_datetime


def trade(trade_type: TradeType, symbol: str, price: str, quantity: int = 1) -> TradeRecord:
    price = Decimal(price)
    return TradeRecord(
        trade_type=trade_type,
        symbol=symbol,
        price=price,
        quantity=quantity,
        timestamp=eastern_datetime(2024, 6, 14),
        total=price * quantity,
    )


# =============================================================================
# METRIC HELPER TESTS
# =============================================================================


class TestMetricHelpers:
    def test_daily_returns(self):
        values = [Decimal("100"), Decimal("110"), Decimal("99")]

        assert daily_returns(values) == [Decimal("0.1"), Decimal("-0.1")]

    def test_daily_returns_skips_zero_base(self):
        values = [Decimal("0"), Decimal("100"), Decimal("150")]

        assert daily_returns(values) == [Decimal("0.5")]

    def test_daily_returns_short_series(self):
        assert daily_returns([Decimal("100")]) == []
        assert daily_returns([]) == []

    def test_standard_deviation_population(self):
        values = [Decimal("2"), Decimal("4"), Decimal("4"), Decimal("4"),
                  Decimal("5"), Decimal("5"), Decimal("7"), Decimal("9")]

        assert standard_deviation(values) == Decimal("2")

    def test_standard_deviation_empty(self):
        assert standard_deviation([]) == Decimal("0")

    def test_max_drawdown(self):
        """
        GIVEN values peaking at 120 then falling to 90
        WHEN computing max drawdown from an initial 100
        THEN it is (120 - 90) / 120 = 25%
        """
        values = [Decimal(v) for v in ("110", "120", "100", "90", "115")]

        assert max_drawdown(values, Decimal("100")) == Decimal("0.25")

    def test_max_drawdown_monotonic_rise(self):
        values = [Decimal(v) for v in ("101", "102", "103")]

        assert max_drawdown(values, Decimal("100")) == Decimal("0")


# =============================================================================
# WIN RATE TESTS
# =============================================================================


class TestWinRate:
    def test_no_closing_trades(self):
        assert win_rate([trade(TradeType.BUY, "AAPL", "100")]) == Decimal("0")

    def test_sell_compared_with_average_buy(self):
        """
        GIVEN buys at 100 and 200 (average 150)
        WHEN selling at 160 and later at 140
        THEN one of two sells is a win
        """
        history = [
            trade(TradeType.BUY, "AAPL", "100"),
            trade(TradeType.BUY, "AAPL", "200"),
            trade(TradeType.SELL, "AAPL", "160"),
            trade(TradeType.SELL, "AAPL", "140"),
        ]

        assert win_rate(history) == Decimal("50")

    def test_cover_wins_below_average_short(self):
        history = [
            trade(TradeType.SHORT, "TSLA", "250"),
            trade(TradeType.COVER, "TSLA", "240"),
        ]

        assert win_rate(history) == Decimal("100")

    def test_only_earlier_openers_count(self):
        history = [
            trade(TradeType.BUY, "AAPL", "100"),
            trade(TradeType.SELL, "AAPL", "110"),
            trade(TradeType.BUY, "AAPL", "500"),
        ]

        assert win_rate(history) == Decimal("100")

    def test_openers_matched_by_symbol(self):
        history = [
            trade(TradeType.BUY, "MSFT", "10"),
            trade(TradeType.BUY, "AAPL", "200"),
            trade(TradeType.SELL, "AAPL", "150"),
        ]

        assert win_rate(history) == Decimal("0")


# =============================================================================
# VALUATION TESTS
# =============================================================================


class TestValuation:
    def test_valuation_breakdown(self, ledger: PortfolioLedger, analysis_service: AnalysisService):
        """
        GIVEN 10 AAPL long at 150 and 10 TSLA short at 250
        WHEN valued at AAPL 185.50 and TSLA 248.75
        THEN long value, short P/L and total add up
        """
        ledger.buy("AAPL", Decimal("150"), 10)
        ledger.short("TSLA", Decimal("250"), 10)
        prices = MappingPriceSource({"AAPL": Decimal("185.50"), "TSLA": Decimal("248.75")})

        view = analysis_service.valuation(ledger.portfolio, prices)

        assert view.cash == Decimal("101000.00")
        assert view.long_value == Decimal("1855.00")
        assert view.short_pnl == Decimal("12.50")
        assert view.total_value == Decimal("102867.50")
        assert [p.symbol for p in view.positions] == ["AAPL", "TSLA"]

        aapl, tsla = view.positions
        assert aapl.direction == "long"
        assert aapl.unrealized_pnl == Decimal("355.00")
        assert tsla.direction == "short"
        assert tsla.market_value == Decimal("-2487.50")
        assert tsla.unrealized_pnl == Decimal("12.50")

    def test_total_matches_ledger(self, ledger, analysis_service, prices):
        ledger.buy("MSFT", Decimal("300"), 7)
        ledger.short("JPM", Decimal("200"), 3)

        view = analysis_service.valuation(ledger.portfolio, prices)

        assert view.total_value == ledger.total_value(prices).quantize(Decimal("0.01"))

    def test_missing_price_raises(self, ledger, analysis_service):
        ledger.buy("AAPL", Decimal("150"), 10)

        with pytest.raises(PriceUnavailableError):
            analysis_service.valuation(ledger.portfolio, MappingPriceSource({}))


# =============================================================================
# METRICS TESTS
# =============================================================================


class TestPortfolioMetrics:
    def test_metrics_without_history(self, ledger, analysis_service, prices):
        ledger.buy("AAPL", Decimal("150"), 10)
        ledger.sell("AAPL", Decimal("180"), 10)

        metrics = analysis_service.portfolio_metrics(ledger.portfolio, prices)

        assert metrics.current_value == Decimal("100300.00")
        assert metrics.total_return == Decimal("300.00")
        assert metrics.total_return_percent == Decimal("0.30")
        assert metrics.volatility_percent == Decimal("0.00")
        assert metrics.sharpe_ratio == Decimal("0")
        assert metrics.max_drawdown_percent == Decimal("0.00")
        assert metrics.number_of_trades == 2
        assert metrics.win_rate_percent == Decimal("100.00")

    def test_metrics_with_value_history(self, ledger, analysis_service, prices):
        history = [Decimal(v) for v in ("100000", "101000", "99990", "100989.9")]

        metrics = analysis_service.portfolio_metrics(ledger.portfolio, prices, history)

        # Daily returns +1%, -1%, +1%: population stdev just under 0.943%
        assert metrics.volatility_percent > Decimal("14")
        assert metrics.volatility_percent < Decimal("16")
        assert metrics.sharpe_ratio > 0
        assert metrics.max_drawdown_percent == Decimal("1.00")

    def test_return_relative_to_configured_starting_cash(self, ledger, prices):
        service = AnalysisService(starting_cash=Decimal("50000"))

        metrics = service.portfolio_metrics(ledger.portfolio, prices)

        assert metrics.total_return == Decimal("50000.00")
        assert metrics.total_return_percent == Decimal("100.00")


# =============================================================================
# SECTOR ALLOCATION TESTS
# =============================================================================


class TestSectorAllocation:
    def test_allocation_by_sector(self, ledger, analysis_service, prices):
        ledger.buy("AAPL", Decimal("100"), 10)
        ledger.buy("JPM", Decimal("100"), 10)

        items = {i.sector: i for i in analysis_service.sector_allocation(ledger.portfolio, prices)}

        assert set(items) == {"Technology", "Healthcare", "Finance", "Consumer", "Energy", "Other"}
        assert items["Technology"].market_value == Decimal("1855.00")
        assert items["Finance"].market_value == Decimal("1983.00")
        assert items["Healthcare"].market_value == Decimal("0.00")
        total = sum((i.percentage for i in items.values()), Decimal("0"))
        assert total == pytest.approx(Decimal("100"), abs=Decimal("0.02"))

    def test_unknown_symbol_is_other(self, ledger, analysis_service):
        ledger.buy("ZZZZ", Decimal("10"), 1)

        items = {i.sector: i for i in analysis_service.sector_allocation(
            ledger.portfolio, MappingPriceSource({"ZZZZ": Decimal("12")})
        )}

        assert items["Other"].percentage == Decimal("100.00")

    def test_empty_portfolio_has_no_percentages(self, ledger, analysis_service, prices):
        items = analysis_service.sector_allocation(ledger.portfolio, prices)

        assert all(i.percentage is None for i in items)
        assert all(i.market_value == Decimal("0") for i in items)

    def test_shorts_excluded(self, ledger, analysis_service, prices):
        ledger.short("TSLA", Decimal("250"), 10)

        items = analysis_service.sector_allocation(ledger.portfolio, prices)

        assert all(i.percentage is None for i in items)
