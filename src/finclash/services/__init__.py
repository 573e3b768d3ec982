"""Service layer - market data caching, ledger and analytics."""

from finclash.services.rate_limiter import RateLimiter
from finclash.services.api_cache import APICache
from finclash.services.cached_api_client import CachedAPIClient, normalize_symbol
from finclash.services.portfolio_ledger import PortfolioLedger, create_portfolio, require_price
from finclash.services.analysis_service import AnalysisService
from finclash.services.flashcard_service import FlashcardService, TRADING_FLASHCARDS

__all__ = [
    "RateLimiter",
    "APICache",
    "CachedAPIClient",
    "normalize_symbol",
    "PortfolioLedger",
    "create_portfolio",
    "require_price",
    "AnalysisService",
    "FlashcardService",
    "TRADING_FLASHCARDS",
]
