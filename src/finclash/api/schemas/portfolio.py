"""Pydantic schemas for portfolio endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finclash.domain.models.enums import TradeType


class PortfolioCreate(BaseModel):
    """Request schema for creating a portfolio."""

    name: str = Field(..., min_length=1, max_length=255)
    starting_cash: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Initial cash (configured default if omitted)",
    )


class PositionResponse(BaseModel):
    symbol: str
    shares: int
    avg_price: Decimal


class ShortPositionResponse(BaseModel):
    symbol: str
    quantity: int
    entry_price: Decimal


class TradeResponse(BaseModel):
    """Response schema for one executed trade."""

    model_config = {"from_attributes": True}

    trade_type: TradeType
    symbol: str
    price: Decimal
    quantity: int
    total: Decimal
    profit_loss: Optional[Decimal] = None
    timestamp: datetime


class PortfolioResponse(BaseModel):
    """Response schema for a single portfolio."""

    portfolio_id: str
    name: str
    cash: Decimal
    positions: list[PositionResponse]
    short_positions: list[ShortPositionResponse]
    history: list[TradeResponse]
    created_at_est: Optional[datetime] = None


class PortfolioListResponse(BaseModel):
    portfolios: list[PortfolioResponse]
    count: int


class TradeRequest(BaseModel):
    """Request schema for executing a trade."""

    action: TradeType
    symbol: str = Field(..., min_length=1, max_length=10)
    quantity: int
    price: Optional[Decimal] = Field(
        default=None,
        description="Execution price (current quote if omitted)",
    )


class TradeResultResponse(BaseModel):
    trade: TradeResponse
    cash: Decimal


class PositionValuationResponse(BaseModel):
    """Mark-to-market line for a long or short holding."""

    model_config = {"from_attributes": True}

    symbol: str
    direction: str
    quantity: int
    basis_price: Decimal
    last_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal


class ValuationResponse(BaseModel):
    """Response schema for portfolio valuation."""

    model_config = {"from_attributes": True}

    cash: Decimal
    long_value: Decimal
    short_pnl: Decimal
    total_value: Decimal
    positions: list[PositionValuationResponse]


class MetricsResponse(BaseModel):
    """Response schema for performance metrics."""

    model_config = {"from_attributes": True}

    current_value: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    volatility_percent: Decimal
    sharpe_ratio: Decimal
    max_drawdown_percent: Decimal
    number_of_trades: int
    win_rate_percent: Decimal


class AllocationItemResponse(BaseModel):
    model_config = {"from_attributes": True}

    sector: str
    market_value: Decimal
    percentage: Optional[Decimal] = None


class AllocationResponse(BaseModel):
    items: list[AllocationItemResponse]
    total_value: Decimal
