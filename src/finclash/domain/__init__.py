"""Domain layer - pure business models with no external dependencies."""

from finclash.domain.models import (
    DataType,
    TradeType,
    PositionDirection,
    CacheEntry,
    Portfolio,
    Position,
    ShortPosition,
    TradeRecord,
    Flashcard,
    CardProgress,
)

__all__ = [
    "DataType",
    "TradeType",
    "PositionDirection",
    "CacheEntry",
    "Portfolio",
    "Position",
    "ShortPosition",
    "TradeRecord",
    "Flashcard",
    "CardProgress",
]
