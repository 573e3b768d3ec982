"""Portfolio, position and trade record domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from finclash.domain.models.enums import PositionDirection, TradeType

STARTING_CASH = Decimal("100000")


@dataclass
class Position:
    """Long holding with volume-weighted average purchase price."""

    symbol: str
    shares: int = 0
    avg_price: Decimal = field(default_factory=lambda: Decimal("0"))

    @property
    def cost_basis(self) -> Decimal:
        return self.avg_price * self.shares


@dataclass
class ShortPosition:
    """Open short with volume-weighted average entry price."""

    symbol: str
    quantity: int = 0
    entry_price: Decimal = field(default_factory=lambda: Decimal("0"))

    def unrealized_pnl(self, price: Decimal) -> Decimal:
        """Short P/L = (entry price - current price) * quantity."""
        return (self.entry_price - price) * self.quantity


@dataclass
class TradeRecord:
    """Append-only history entry for an executed trade."""

    trade_type: TradeType
    symbol: str
    price: Decimal
    quantity: int
    timestamp: datetime
    total: Decimal
    profit_loss: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if isinstance(self.trade_type, str):
            self.trade_type = TradeType(self.trade_type)

    @property
    def is_closing(self) -> bool:
        """Return True for trades that close exposure (SELL or COVER)."""
        return self.trade_type in (TradeType.SELL, TradeType.COVER)


@dataclass
class Portfolio:
    """
    Game account: cash plus long and short positions.

    Mutated only through PortfolioLedger. A symbol absent from
    ``positions``/``short_positions`` holds zero in that direction.
    """

    portfolio_id: str
    name: str
    cash: Decimal = field(default_factory=lambda: STARTING_CASH)
    positions: dict[str, Position] = field(default_factory=dict)
    short_positions: dict[str, ShortPosition] = field(default_factory=dict)
    history: list[TradeRecord] = field(default_factory=list)
    created_at_est: Optional[datetime] = field(default=None)

    def direction(self, symbol: str) -> PositionDirection:
        """Current holding state for ``symbol``."""
        position = self.positions.get(symbol)
        if position is not None and position.shares > 0:
            return PositionDirection.LONG
        short = self.short_positions.get(symbol)
        if short is not None and short.quantity > 0:
            return PositionDirection.SHORT
        return PositionDirection.NONE
