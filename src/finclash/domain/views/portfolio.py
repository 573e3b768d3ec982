"""View models for portfolio valuation and analysis outputs."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


@dataclass
class TradeValidation:
    """Result of a non-raising trade pre-check."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class PositionValuation:
    """Mark-to-market view of a single long or short holding."""

    symbol: str
    direction: str
    quantity: int
    basis_price: Decimal
    last_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal


@dataclass
class PortfolioValuationView:
    """Portfolio value broken down by component."""

    cash: Decimal
    long_value: Decimal
    short_pnl: Decimal
    total_value: Decimal
    positions: list[PositionValuation] = field(default_factory=list)


@dataclass
class PortfolioMetricsView:
    """Performance statistics for a portfolio."""

    current_value: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    volatility_percent: Decimal
    sharpe_ratio: Decimal
    max_drawdown_percent: Decimal
    number_of_trades: int
    win_rate_percent: Decimal


@dataclass
class AllocationItem:
    """Single sector bucket in an allocation breakdown."""

    sector: str
    market_value: Decimal
    percentage: Optional[Decimal] = None
