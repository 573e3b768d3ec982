"""Enumerations for domain models."""

from enum import Enum


class DataType(str, Enum):
    """Market data categories; each has its own cache TTL."""

    QUOTE = "quote"
    CANDLES = "candles"
    NEWS = "news"
    FUNDAMENTALS = "fundamentals"
    COMPANY = "company"
    SEARCH = "search"
    SOCIAL = "social"


class TradeType(str, Enum):
    """Types of trades recorded in portfolio history."""

    BUY = "buy"
    SELL = "sell"
    SHORT = "short"
    COVER = "cover"


class PositionDirection(str, Enum):
    """Per-symbol holding state."""

    NONE = "none"
    LONG = "long"
    SHORT = "short"
