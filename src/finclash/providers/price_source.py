"""Price sources used for portfolio valuation."""

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Protocol


class PriceSource(Protocol):
    """Anything that can report a current price for a symbol."""

    def lookup(self, symbol: str) -> Optional[Decimal]:
        """Return the current price, or None if unknown."""
        ...


class MappingPriceSource:
    """Price source backed by a symbol -> price mapping."""

    def __init__(self, prices: Mapping[str, Decimal]):
        self._prices = {s.upper(): Decimal(str(p)) for s, p in prices.items()}

    def lookup(self, symbol: str) -> Optional[Decimal]:
        return self._prices.get(symbol.upper())


def extract_price(quote: Any) -> Optional[Decimal]:
    """
    Read the current price from a Finnhub-style quote payload.

    Finnhub reports unknown symbols as a zero current price.
    """
    if not isinstance(quote, dict):
        return None
    try:
        price = Decimal(str(quote.get("c")))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price
