"""Domain models package."""

from finclash.domain.models.enums import DataType, TradeType, PositionDirection
from finclash.domain.models.cache import CacheEntry
from finclash.domain.models.portfolio import (
    STARTING_CASH,
    Portfolio,
    Position,
    ShortPosition,
    TradeRecord,
)
from finclash.domain.models.flashcard import Flashcard, CardProgress

__all__ = [
    "DataType",
    "TradeType",
    "PositionDirection",
    "CacheEntry",
    "STARTING_CASH",
    "Portfolio",
    "Position",
    "ShortPosition",
    "TradeRecord",
    "Flashcard",
    "CardProgress",
]
