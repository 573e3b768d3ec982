"""SQLAlchemy repository implementations."""

from finclash.repositories.sqlalchemy.database import Base, Database
from finclash.repositories.sqlalchemy.cache_store import SqlAlchemyCacheStore
from finclash.repositories.sqlalchemy.portfolio_repo import SqlAlchemyPortfolioRepository

__all__ = [
    "Base",
    "Database",
    "SqlAlchemyCacheStore",
    "SqlAlchemyPortfolioRepository",
]
