"""Market data providers module."""

from finclash.providers.market_data_provider import QuoteApiTransport, HttpQuoteApiTransport
from finclash.providers.stub_provider import StubQuoteApiTransport
from finclash.providers.price_source import PriceSource, MappingPriceSource, extract_price

__all__ = [
    "QuoteApiTransport",
    "HttpQuoteApiTransport",
    "StubQuoteApiTransport",
    "PriceSource",
    "MappingPriceSource",
    "extract_price",
]
