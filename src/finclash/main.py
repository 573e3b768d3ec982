"""FastAPI application entry point."""

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from finclash import __version__
from finclash.api.routers import market_router, portfolios_router
from finclash.app_context import AppContext
from finclash.config.logging_config import setup_logging
from finclash.config.settings import Settings, get_settings
from finclash.core.exceptions import (
    AppError,
    FetchFailedError,
    NotFoundError,
    PriceUnavailableError,
)
from finclash.providers import QuoteApiTransport

ERROR_STATUS_CODES: dict[type, int] = {
    NotFoundError: 404,
    FetchFailedError: 502,
    PriceUnavailableError: 503,
}


def status_code_for(exc: AppError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[QuoteApiTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    The AppContext is created on startup, so importing this module opens no
    database and no network client. ``transport`` replaces the quote API
    transport (tests pass deterministic ones).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        setup_logging(settings)
        context = AppContext(settings, transport=transport)
        context.startup()
        app.state.context = context
        maintenance = asyncio.create_task(context.maintenance_loop())
        yield
        # Shutdown
        maintenance.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await maintenance
        await context.shutdown()

    app = FastAPI(
        title=settings.app_name,
        description="Market data cache and paper-trading portfolio valuation",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(portfolios_router)
    app.include_router(market_router)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Global handler for application errors."""
        return JSONResponse(
            status_code=status_code_for(exc),
            content={"error": exc.code, "message": exc.message},
        )

    @app.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/")
    def root() -> dict[str, str]:
        """Root endpoint with API info."""
        return {
            "app": settings.app_name,
            "version": __version__,
            "docs": "/docs",
        }

    return app


app = create_app()
