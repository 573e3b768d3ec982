"""FinClash error hierarchy.

Every error carries a stable ``code`` that the API error handler returns
alongside the message.
"""

from typing import Optional


class AppError(Exception):
    """Root of all FinClash errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Bad caller input (symbol, quantity, date range, query)."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(AppError):
    """Unknown portfolio, card or other entity."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class ConfigurationError(AppError):
    """Raised at construction time for unusable configuration."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR")


class FetchFailedError(AppError):
    """Raised when an outbound market data request fails."""

    def __init__(self, endpoint: str, reason: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(f"Fetch failed for {endpoint}: {reason}", code="FETCH_FAILED")


class PersistenceError(AppError):
    """Raised by durable stores when a read or write fails."""

    def __init__(self, message: str):
        super().__init__(message, code="PERSISTENCE_ERROR")


class PriceUnavailableError(AppError):
    """Raised when a held symbol has no current price for valuation."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"No current price for {symbol}", code="PRICE_UNAVAILABLE")


# Trade validation errors. All are raised before the portfolio is mutated.


class InvalidQuantityError(AppError):
    """Raised when a trade quantity is not a positive integer."""

    def __init__(self, quantity: object):
        super().__init__(f"Quantity must be positive, got {quantity}", code="INVALID_QUANTITY")


class InsufficientFundsError(AppError):
    """Raised when a trade costs more cash than available."""

    def __init__(self, required: str, available: str):
        super().__init__(
            f"Insufficient funds: need {required}, have {available}",
            code="INSUFFICIENT_FUNDS",
        )


class InsufficientSharesError(AppError):
    """Raised when attempting to sell or cover more shares than held."""

    def __init__(self, symbol: str, requested: str, available: str):
        super().__init__(
            f"Insufficient shares of {symbol}: requested {requested}, available {available}",
            code="INSUFFICIENT_SHARES",
        )


class NoShortPositionError(AppError):
    """Raised when covering a symbol that has no open short."""

    def __init__(self, symbol: str):
        super().__init__(f"No short position in {symbol} to cover", code="NO_SHORT_POSITION")


class ConflictingPositionDirectionError(AppError):
    """Raised when a trade would hold a symbol both long and short."""

    def __init__(self, symbol: str, held: str):
        super().__init__(
            f"Cannot open opposite position in {symbol} while holding a {held} position",
            code="CONFLICTING_POSITION_DIRECTION",
        )
