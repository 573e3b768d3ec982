"""Portfolio ledger for long and short trading."""

import logging
import uuid
from decimal import Decimal, ROUND_FLOOR
from typing import Callable, Optional

from finclash.core.timezone import now_eastern
from finclash.core.exceptions import (
    AppError,
    ValidationError,
    InvalidQuantityError,
    InsufficientFundsError,
    InsufficientSharesError,
    NoShortPositionError,
    ConflictingPositionDirectionError,
    PriceUnavailableError,
)
from finclash.domain.models import (
    STARTING_CASH,
    Portfolio,
    Position,
    ShortPosition,
    TradeRecord,
    TradeType,
    PositionDirection,
)
from finclash.domain.views import TradeValidation
from finclash.providers.price_source import PriceSource
from finclash.services.cached_api_client import normalize_symbol

logger = logging.getLogger(__name__)

# Short exposure allowed per dollar of cash (2:1 leverage)
SHORT_MARGIN_MULTIPLIER = Decimal("2")


def require_price(price_source: PriceSource, symbol: str) -> Decimal:
    """Current price of symbol; a missing price is an error, never zero."""
    price = price_source.lookup(symbol)
    if price is None:
        raise PriceUnavailableError(symbol)
    return Decimal(price)


def create_portfolio(name: str, starting_cash: Decimal = STARTING_CASH) -> Portfolio:
    """Start a new game account with the given cash and nothing else."""
    if starting_cash < 0:
        raise ValidationError("Starting cash cannot be negative")
    return Portfolio(
        portfolio_id=str(uuid.uuid4()),
        name=name,
        cash=Decimal(starting_cash),
        created_at_est=now_eastern(),
    )


class PortfolioLedger:
    """
    Executes trades against a Portfolio.

    Per symbol the portfolio is flat, long or short; going directly from
    long to short (or back) is rejected. Every check runs before any
    mutation, so a rejected trade leaves the portfolio unchanged.
    """

    def __init__(
        self,
        portfolio: Portfolio,
        clock: Callable = now_eastern,
    ):
        self._portfolio = portfolio
        self._clock = clock

    @property
    def portfolio(self) -> Portfolio:
        return self._portfolio

    @property
    def cash(self) -> Decimal:
        return self._portfolio.cash

    # Lookups

    def shares_held(self, symbol: str) -> int:
        """Long shares held (0 when no position)."""
        position = self._portfolio.positions.get(normalize_symbol(symbol))
        return position.shares if position is not None else 0

    def get_position(self, symbol: str) -> Optional[Position]:
        return self._portfolio.positions.get(normalize_symbol(symbol))

    def get_short_position(self, symbol: str) -> ShortPosition:
        """Open short for symbol, or an empty one if none."""
        symbol = normalize_symbol(symbol)
        short = self._portfolio.short_positions.get(symbol)
        if short is None:
            return ShortPosition(symbol=symbol, quantity=0, entry_price=Decimal("0"))
        return short

    def short_pnl(self, symbol: str, current_price: Decimal) -> Decimal:
        """Unrealized P/L of the short position at ``current_price``."""
        return self.get_short_position(symbol).unrealized_pnl(Decimal(current_price))

    def max_short_quantity(self, price: Decimal) -> int:
        """Largest short allowed at ``price``: floor(cash * 2 / price)."""
        price = self._check_price(price)
        available_margin = self._portfolio.cash * SHORT_MARGIN_MULTIPLIER
        if available_margin <= 0:
            return 0
        return int((available_margin / price).to_integral_value(rounding=ROUND_FLOOR))

    # Trades

    def buy(self, symbol: str, price: Decimal, quantity: int) -> TradeRecord:
        """Open or add to a long position at the weighted-average price."""
        symbol, price = self._check_trade_inputs(symbol, price, quantity)
        if self._portfolio.direction(symbol) == PositionDirection.SHORT:
            raise ConflictingPositionDirectionError(symbol, PositionDirection.SHORT.value)
        cost = price * quantity
        self._require_cash(cost)

        position = self._portfolio.positions.get(symbol)
        if position is None or position.shares == 0:
            self._portfolio.positions[symbol] = Position(symbol=symbol, shares=quantity, avg_price=price)
        else:
            total_shares = position.shares + quantity
            position.avg_price = (position.avg_price * position.shares + cost) / total_shares
            position.shares = total_shares

        self._portfolio.cash -= cost
        return self._record(TradeType.BUY, symbol, price, quantity, cost)

    def sell(self, symbol: str, price: Decimal, quantity: int) -> TradeRecord:
        """Reduce or close a long position; average price is unchanged."""
        symbol, price = self._check_trade_inputs(symbol, price, quantity)
        held = self.shares_held(symbol)
        if held < quantity:
            raise InsufficientSharesError(symbol, str(quantity), str(held))

        proceeds = price * quantity
        position = self._portfolio.positions[symbol]
        position.shares -= quantity
        if position.shares == 0:
            del self._portfolio.positions[symbol]

        self._portfolio.cash += proceeds
        return self._record(TradeType.SELL, symbol, price, quantity, proceeds)

    def short(self, symbol: str, price: Decimal, quantity: int) -> TradeRecord:
        """Open or add to a short; sale proceeds are credited immediately."""
        self._raise_first(self._short_errors(symbol, price, quantity))
        symbol, price = normalize_symbol(symbol), Decimal(price)

        proceeds = price * quantity
        short = self._portfolio.short_positions.get(symbol)
        if short is None or short.quantity == 0:
            self._portfolio.short_positions[symbol] = ShortPosition(
                symbol=symbol, quantity=quantity, entry_price=price
            )
        else:
            total_qty = short.quantity + quantity
            short.entry_price = (short.entry_price * short.quantity + proceeds) / total_qty
            short.quantity = total_qty

        self._portfolio.cash += proceeds
        return self._record(TradeType.SHORT, symbol, price, quantity, proceeds)

    def cover(self, symbol: str, price: Decimal, quantity: int) -> TradeRecord:
        """Buy back shorted shares and realize (entry - price) * quantity."""
        self._raise_first(self._cover_errors(symbol, price, quantity))
        symbol, price = normalize_symbol(symbol), Decimal(price)

        cost = price * quantity
        short = self._portfolio.short_positions[symbol]
        profit_loss = (short.entry_price - price) * quantity
        short.quantity -= quantity
        if short.quantity == 0:
            del self._portfolio.short_positions[symbol]

        self._portfolio.cash -= cost
        return self._record(TradeType.COVER, symbol, price, quantity, cost, profit_loss)

    # Non-raising pre-checks

    def validate_short(self, symbol: str, price: Decimal, quantity: int) -> TradeValidation:
        """Collect every reason a short would be rejected."""
        errors = [e.message for e in self._short_errors(symbol, price, quantity)]
        return TradeValidation(is_valid=not errors, errors=errors)

    def validate_cover(self, symbol: str, price: Decimal, quantity: int) -> TradeValidation:
        """Collect every reason a cover would be rejected."""
        errors = [e.message for e in self._cover_errors(symbol, price, quantity)]
        return TradeValidation(is_valid=not errors, errors=errors)

    # Valuation

    def total_value(self, price_source: PriceSource) -> Decimal:
        """
        Cash + long market value + short running P/L.

        Short proceeds already sit in cash, so a short contributes only
        (entry - price) * quantity.
        """
        total = self._portfolio.cash
        for symbol, position in self._portfolio.positions.items():
            if position.shares > 0:
                total += require_price(price_source, symbol) * position.shares
        for symbol, short in self._portfolio.short_positions.items():
            if short.quantity > 0:
                total += short.unrealized_pnl(require_price(price_source, symbol))
        return total

    # Internals

    @staticmethod
    def _check_price(price: Decimal) -> Decimal:
        price = Decimal(price)
        if not price.is_finite() or price <= 0:
            raise ValidationError(f"Price must be positive, got {price}")
        return price

    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantityError(quantity)

    def _check_trade_inputs(self, symbol: str, price: Decimal, quantity: int) -> tuple[str, Decimal]:
        self._check_quantity(quantity)
        return normalize_symbol(symbol), self._check_price(price)

    def _require_cash(self, amount: Decimal) -> None:
        if self._portfolio.cash < amount:
            raise InsufficientFundsError(f"${amount:.2f}", f"${self._portfolio.cash:.2f}")

    def _short_errors(self, symbol: str, price: Decimal, quantity: int) -> list[AppError]:
        errors: list[AppError] = []
        try:
            symbol, price = self._check_trade_inputs(symbol, price, quantity)
        except AppError as exc:
            return [exc]

        if self._portfolio.direction(symbol) == PositionDirection.LONG:
            errors.append(ConflictingPositionDirectionError(symbol, PositionDirection.LONG.value))

        max_short = self.max_short_quantity(price)
        if quantity > max_short:
            errors.append(
                InsufficientFundsError(
                    f"margin for {quantity} shares (max short: {max_short})",
                    f"${self._portfolio.cash:.2f}",
                )
            )
        return errors

    def _cover_errors(self, symbol: str, price: Decimal, quantity: int) -> list[AppError]:
        errors: list[AppError] = []
        try:
            symbol, price = self._check_trade_inputs(symbol, price, quantity)
        except AppError as exc:
            return [exc]

        short = self.get_short_position(symbol)
        if short.quantity == 0:
            return [NoShortPositionError(symbol)]
        if quantity > short.quantity:
            errors.append(InsufficientSharesError(symbol, str(quantity), str(short.quantity)))

        cost = price * quantity
        if self._portfolio.cash < cost:
            errors.append(InsufficientFundsError(f"${cost:.2f}", f"${self._portfolio.cash:.2f}"))
        return errors

    @staticmethod
    def _raise_first(errors: list[AppError]) -> None:
        if errors:
            raise errors[0]

    def _record(
        self,
        trade_type: TradeType,
        symbol: str,
        price: Decimal,
        quantity: int,
        total: Decimal,
        profit_loss: Optional[Decimal] = None,
    ) -> TradeRecord:
        record = TradeRecord(
            trade_type=trade_type,
            symbol=symbol,
            price=price,
            quantity=quantity,
            timestamp=self._clock(),
            total=total,
            profit_loss=profit_loss,
        )
        self._portfolio.history.append(record)
        logger.info(
            "%s %s %d @ %s (portfolio %s)",
            trade_type.value.upper(),
            symbol,
            quantity,
            price,
            self._portfolio.portfolio_id,
        )
        return record
