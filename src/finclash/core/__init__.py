"""Core utilities and shared functionality."""

from finclash.core.timezone import (
    now_eastern,
    to_eastern,
    parse_market_time,
    to_storage,
    from_storage,
    candle_range,
    to_unix_seconds,
    EASTERN_TZ,
)
from finclash.core.exceptions import (
    AppError,
    ValidationError,
    NotFoundError,
    ConfigurationError,
    FetchFailedError,
    PersistenceError,
    PriceUnavailableError,
    InvalidQuantityError,
    InsufficientFundsError,
    InsufficientSharesError,
    NoShortPositionError,
    ConflictingPositionDirectionError,
)

__all__ = [
    "now_eastern",
    "to_eastern",
    "parse_market_time",
    "to_storage",
    "from_storage",
    "candle_range",
    "to_unix_seconds",
    "EASTERN_TZ",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "FetchFailedError",
    "PersistenceError",
    "PriceUnavailableError",
    "InvalidQuantityError",
    "InsufficientFundsError",
    "InsufficientSharesError",
    "NoShortPositionError",
    "ConflictingPositionDirectionError",
]
