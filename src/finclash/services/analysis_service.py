"""Analysis service for portfolio analytics."""

from decimal import Decimal
from typing import Optional, Sequence

from finclash.domain.models import STARTING_CASH, Portfolio, TradeRecord, TradeType
from finclash.domain.views import (
    AllocationItem,
    PortfolioMetricsView,
    PortfolioValuationView,
    PositionValuation,
)
from finclash.providers.price_source import PriceSource
from finclash.services.portfolio_ledger import PortfolioLedger, require_price

TRADING_DAYS_PER_YEAR = 252
RISK_FREE_RATE = Decimal("0.02")

SECTORS = ("Technology", "Healthcare", "Finance", "Consumer", "Energy", "Other")

SECTOR_MAP: dict[str, str] = {
    "AAPL": "Technology",
    "GOOGL": "Technology",
    "MSFT": "Technology",
    "NVDA": "Technology",
    "META": "Technology",
    "AMD": "Technology",
    "AMZN": "Consumer",
    "TSLA": "Consumer",
    "DIS": "Consumer",
    "NKE": "Consumer",
    "JPM": "Finance",
    "V": "Finance",
    "COIN": "Finance",
    "JNJ": "Healthcare",
    "PFE": "Healthcare",
    "UNH": "Healthcare",
    "XOM": "Energy",
    "CVX": "Energy",
    "NFLX": "Other",
}

_CENT = Decimal("0.01")


def daily_returns(values: Sequence[Decimal]) -> list[Decimal]:
    """Period-over-period returns; periods starting at zero value are skipped."""
    returns = []
    for prev, curr in zip(values, values[1:]):
        prev, curr = Decimal(prev), Decimal(curr)
        if prev != 0:
            returns.append((curr - prev) / prev)
    return returns


def standard_deviation(values: Sequence[Decimal]) -> Decimal:
    """Population standard deviation (0 for an empty sequence)."""
    if not values:
        return Decimal("0")
    mean = sum(values, Decimal("0")) / len(values)
    variance = sum(((v - mean) ** 2 for v in values), Decimal("0")) / len(values)
    return variance.sqrt()


def max_drawdown(values: Sequence[Decimal], initial_value: Decimal = STARTING_CASH) -> Decimal:
    """Largest peak-to-trough decline as a fraction of the peak."""
    worst = Decimal("0")
    peak = Decimal(values[0]) if values else Decimal(initial_value)
    for value in values:
        value = Decimal(value)
        if value > peak:
            peak = value
        if peak > 0:
            drawdown = (peak - value) / peak
            if drawdown > worst:
                worst = drawdown
    return worst


def win_rate(history: Sequence[TradeRecord]) -> Decimal:
    """
    Percentage of closing trades that were profitable.

    Approximation, not lot matching: a SELL wins if its price beats the
    plain average price of all earlier BUYs of the symbol; a COVER wins if
    it is below the average of all earlier SHORTs. Closing trades with no
    earlier opener count as losses.
    """
    closing = [t for t in history if t.is_closing]
    if not closing:
        return Decimal("0")

    wins = 0
    for index, trade in enumerate(history):
        if not trade.is_closing:
            continue
        opener_type = TradeType.BUY if trade.trade_type == TradeType.SELL else TradeType.SHORT
        opener_prices = [
            t.price
            for t in history[:index]
            if t.symbol == trade.symbol and t.trade_type == opener_type
        ]
        if not opener_prices:
            continue
        avg_open = sum(opener_prices, Decimal("0")) / len(opener_prices)
        if trade.trade_type == TradeType.SELL and trade.price > avg_open:
            wins += 1
        elif trade.trade_type == TradeType.COVER and trade.price < avg_open:
            wins += 1

    return Decimal(wins) / Decimal(len(closing)) * 100


class AnalysisService:
    """
    Service for portfolio analytics and reporting.

    Computes mark-to-market valuation, performance metrics and sector
    allocation from a portfolio and a price source.
    """

    def __init__(self, starting_cash: Decimal = STARTING_CASH):
        self._starting_cash = Decimal(starting_cash)

    def valuation(self, portfolio: Portfolio, price_source: PriceSource) -> PortfolioValuationView:
        """
        Value each holding at its current price.

        Long holdings contribute market value; shorts contribute their
        unrealized P/L since the sale proceeds are already in cash.
        """
        items: list[PositionValuation] = []
        long_value = Decimal("0")
        short_pnl = Decimal("0")

        for symbol, position in sorted(portfolio.positions.items()):
            if position.shares <= 0:
                continue
            price = require_price(price_source, symbol)
            market_value = price * position.shares
            long_value += market_value
            items.append(
                PositionValuation(
                    symbol=symbol,
                    direction="long",
                    quantity=position.shares,
                    basis_price=position.avg_price,
                    last_price=price,
                    market_value=market_value.quantize(_CENT),
                    unrealized_pnl=((price - position.avg_price) * position.shares).quantize(_CENT),
                )
            )

        for symbol, short in sorted(portfolio.short_positions.items()):
            if short.quantity <= 0:
                continue
            price = require_price(price_source, symbol)
            pnl = short.unrealized_pnl(price)
            short_pnl += pnl
            items.append(
                PositionValuation(
                    symbol=symbol,
                    direction="short",
                    quantity=short.quantity,
                    basis_price=short.entry_price,
                    last_price=price,
                    market_value=(-price * short.quantity).quantize(_CENT),
                    unrealized_pnl=pnl.quantize(_CENT),
                )
            )

        return PortfolioValuationView(
            cash=portfolio.cash.quantize(_CENT),
            long_value=long_value.quantize(_CENT),
            short_pnl=short_pnl.quantize(_CENT),
            total_value=(portfolio.cash + long_value + short_pnl).quantize(_CENT),
            positions=items,
        )

    def portfolio_metrics(
        self,
        portfolio: Portfolio,
        price_source: PriceSource,
        value_history: Optional[Sequence[Decimal]] = None,
    ) -> PortfolioMetricsView:
        """
        Return, risk and trade statistics.

        ``value_history`` is a sequence of daily total values, oldest first.
        Volatility and Sharpe are annualized over 252 trading days with a
        2%/yr risk-free rate prorated daily.
        """
        value_history = [Decimal(v) for v in (value_history or [])]
        current_value = PortfolioLedger(portfolio).total_value(price_source)
        total_return = current_value - self._starting_cash
        total_return_percent = (
            total_return / self._starting_cash * 100 if self._starting_cash else Decimal("0")
        )

        returns = daily_returns(value_history)
        volatility = standard_deviation(returns)
        annualizer = Decimal(TRADING_DAYS_PER_YEAR).sqrt()
        daily_risk_free = RISK_FREE_RATE / TRADING_DAYS_PER_YEAR
        avg_return = sum(returns, Decimal("0")) / (len(returns) or 1)
        sharpe = (avg_return - daily_risk_free) / volatility * annualizer if volatility > 0 else Decimal("0")

        return PortfolioMetricsView(
            current_value=current_value.quantize(_CENT),
            total_return=total_return.quantize(_CENT),
            total_return_percent=total_return_percent.quantize(_CENT),
            volatility_percent=(volatility * annualizer * 100).quantize(_CENT),
            sharpe_ratio=sharpe.quantize(Decimal("0.0001")),
            max_drawdown_percent=(max_drawdown(value_history, self._starting_cash) * 100).quantize(_CENT),
            number_of_trades=len(portfolio.history),
            win_rate_percent=win_rate(portfolio.history).quantize(_CENT),
        )

    def sector_allocation(self, portfolio: Portfolio, price_source: PriceSource) -> list[AllocationItem]:
        """Long market value per sector, in a fixed sector order."""
        buckets = {sector: Decimal("0") for sector in SECTORS}
        for symbol, position in portfolio.positions.items():
            if position.shares <= 0:
                continue
            value = require_price(price_source, symbol) * position.shares
            buckets[SECTOR_MAP.get(symbol, "Other")] += value

        total = sum(buckets.values(), Decimal("0"))
        return [
            AllocationItem(
                sector=sector,
                market_value=value.quantize(_CENT),
                percentage=(value / total * 100).quantize(_CENT) if total else None,
            )
            for sector, value in buckets.items()
        ]
