"""SQLAlchemy ORM model definitions."""

from decimal import Decimal

from sqlalchemy import (
    Column,
    String,
    Date,
    DateTime,
    Integer,
    ForeignKey,
    Numeric,
    JSON,
    Enum as SqlEnum,
)
from sqlalchemy.orm import relationship

from finclash.repositories.sqlalchemy.database import Base
from finclash.domain.models.enums import DataType, TradeType


class CacheEntryORM(Base):
    """SQLAlchemy model for a durable cache entry."""

    __tablename__ = "cache_entries"

    key = Column(String(255), primary_key=True)
    data_type = Column(SqlEnum(DataType), nullable=False)
    data = Column(JSON, nullable=True)
    stored_at_est = Column(DateTime, nullable=False)
    last_accessed_at_est = Column(DateTime, nullable=False)
    hit_count = Column(Integer, nullable=False, default=0)


class PortfolioORM(Base):
    """SQLAlchemy model for Portfolio."""

    __tablename__ = "portfolios"

    portfolio_id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    cash = Column(Numeric(precision=18, scale=6), nullable=False, default=Decimal("0"))
    created_at_est = Column(DateTime, nullable=False)

    positions = relationship(
        "PositionORM",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        order_by="PositionORM.symbol",
    )
    short_positions = relationship(
        "ShortPositionORM",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        order_by="ShortPositionORM.symbol",
    )
    trades = relationship(
        "TradeORM",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        order_by="TradeORM.sequence",
    )
    value_snapshots = relationship(
        "PortfolioValueORM",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        order_by="PortfolioValueORM.as_of_date",
    )


class PositionORM(Base):
    """SQLAlchemy model for a long Position."""

    __tablename__ = "positions"

    portfolio_id = Column(String(36), ForeignKey("portfolios.portfolio_id"), primary_key=True)
    symbol = Column(String(20), primary_key=True)
    shares = Column(Integer, nullable=False, default=0)
    avg_price = Column(Numeric(precision=18, scale=6), nullable=False, default=Decimal("0"))

    portfolio = relationship("PortfolioORM", back_populates="positions")


class ShortPositionORM(Base):
    """SQLAlchemy model for a ShortPosition."""

    __tablename__ = "short_positions"

    portfolio_id = Column(String(36), ForeignKey("portfolios.portfolio_id"), primary_key=True)
    symbol = Column(String(20), primary_key=True)
    quantity = Column(Integer, nullable=False, default=0)
    entry_price = Column(Numeric(precision=18, scale=6), nullable=False, default=Decimal("0"))

    portfolio = relationship("PortfolioORM", back_populates="short_positions")


class TradeORM(Base):
    """SQLAlchemy model for a TradeRecord (history entry)."""

    __tablename__ = "trades"

    portfolio_id = Column(String(36), ForeignKey("portfolios.portfolio_id"), primary_key=True)
    sequence = Column(Integer, primary_key=True)
    trade_type = Column(SqlEnum(TradeType), nullable=False)
    symbol = Column(String(20), nullable=False)
    price = Column(Numeric(precision=18, scale=6), nullable=False)
    quantity = Column(Integer, nullable=False)
    total = Column(Numeric(precision=18, scale=6), nullable=False)
    profit_loss = Column(Numeric(precision=18, scale=6), nullable=True)
    timestamp_est = Column(DateTime, nullable=False)

    portfolio = relationship("PortfolioORM", back_populates="trades")


class PortfolioValueORM(Base):
    """Daily total value snapshot; the latest valuation of a day wins."""

    __tablename__ = "portfolio_values"

    portfolio_id = Column(String(36), ForeignKey("portfolios.portfolio_id"), primary_key=True)
    as_of_date = Column(Date, primary_key=True)
    total_value = Column(Numeric(precision=18, scale=6), nullable=False)
    recorded_at_est = Column(DateTime, nullable=False)

    portfolio = relationship("PortfolioORM", back_populates="value_snapshots")
