"""API routers package."""

from finclash.api.routers.portfolios import router as portfolios_router
from finclash.api.routers.market import router as market_router

__all__ = [
    "portfolios_router",
    "market_router",
]
