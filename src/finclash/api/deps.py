"""Dependency injection for FastAPI."""

from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from finclash.app_context import AppContext
from finclash.repositories.sqlalchemy import SqlAlchemyPortfolioRepository
from finclash.services import AnalysisService, CachedAPIClient


def get_app_context(request: Request) -> AppContext:
    """Provide the AppContext created by the application lifespan."""
    return request.app.state.context


def get_db(context: AppContext = Depends(get_app_context)) -> Generator[Session, None, None]:
    """Provide a request-scoped database session."""
    yield from context.database.get_db()


def get_portfolio_repo(
    db: Session = Depends(get_db),
    context: AppContext = Depends(get_app_context),
) -> SqlAlchemyPortfolioRepository:
    """Provide PortfolioRepository instance."""
    return context.portfolio_repo(db)


def get_api_client(context: AppContext = Depends(get_app_context)) -> CachedAPIClient:
    """Provide the shared CachedAPIClient."""
    return context.client


def get_analysis_service(context: AppContext = Depends(get_app_context)) -> AnalysisService:
    """Provide AnalysisService instance."""
    return context.analysis
