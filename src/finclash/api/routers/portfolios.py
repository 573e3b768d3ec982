"""Portfolio and trading endpoints."""

from decimal import Decimal
from typing import Callable

from fastapi import APIRouter, Depends

from finclash.api.deps import get_analysis_service, get_app_context, get_portfolio_repo
from finclash.api.schemas import (
    AllocationItemResponse,
    AllocationResponse,
    MetricsResponse,
    PortfolioCreate,
    PortfolioListResponse,
    PortfolioResponse,
    PositionResponse,
    ShortPositionResponse,
    TradeRequest,
    TradeResponse,
    TradeResultResponse,
    ValuationResponse,
)
from finclash.app_context import AppContext
from finclash.core.exceptions import NotFoundError
from finclash.domain.models import Portfolio, TradeRecord, TradeType
from finclash.providers import PriceSource
from finclash.repositories.sqlalchemy import SqlAlchemyPortfolioRepository
from finclash.services import (
    AnalysisService,
    PortfolioLedger,
    create_portfolio,
    normalize_symbol,
    require_price,
)

router = APIRouter(prefix="/portfolios", tags=["portfolios"])


def _portfolio_response(portfolio: Portfolio) -> PortfolioResponse:
    return PortfolioResponse(
        portfolio_id=portfolio.portfolio_id,
        name=portfolio.name,
        cash=portfolio.cash,
        positions=[
            PositionResponse(symbol=p.symbol, shares=p.shares, avg_price=p.avg_price)
            for p in sorted(portfolio.positions.values(), key=lambda p: p.symbol)
        ],
        short_positions=[
            ShortPositionResponse(symbol=s.symbol, quantity=s.quantity, entry_price=s.entry_price)
            for s in sorted(portfolio.short_positions.values(), key=lambda s: s.symbol)
        ],
        history=[TradeResponse.model_validate(t) for t in portfolio.history],
        created_at_est=portfolio.created_at_est,
    )


def _load(repo: SqlAlchemyPortfolioRepository, portfolio_id: str) -> Portfolio:
    portfolio = repo.get_by_id(portfolio_id)
    if portfolio is None:
        raise NotFoundError("Portfolio", portfolio_id)
    return portfolio


async def _held_prices(context: AppContext, portfolio: Portfolio) -> PriceSource:
    symbols = list(portfolio.positions) + list(portfolio.short_positions)
    return await context.quote_prices(symbols)


@router.post("", response_model=PortfolioResponse, status_code=201)
def create(
    data: PortfolioCreate,
    repo: SqlAlchemyPortfolioRepository = Depends(get_portfolio_repo),
    context: AppContext = Depends(get_app_context),
) -> PortfolioResponse:
    """Create a portfolio funded with starting cash."""
    starting_cash = data.starting_cash or context.settings.starting_cash
    portfolio = repo.save(create_portfolio(data.name, starting_cash))
    return _portfolio_response(portfolio)


@router.get("", response_model=PortfolioListResponse)
def list_portfolios(
    repo: SqlAlchemyPortfolioRepository = Depends(get_portfolio_repo),
) -> PortfolioListResponse:
    portfolios = repo.list_all()
    return PortfolioListResponse(
        portfolios=[_portfolio_response(p) for p in portfolios],
        count=len(portfolios),
    )


@router.get("/{portfolio_id}", response_model=PortfolioResponse)
def get_portfolio(
    portfolio_id: str,
    repo: SqlAlchemyPortfolioRepository = Depends(get_portfolio_repo),
) -> PortfolioResponse:
    """Get a portfolio with positions and trade history."""
    return _portfolio_response(_load(repo, portfolio_id))


@router.post("/{portfolio_id}/trades", response_model=TradeResultResponse, status_code=201)
async def execute_trade(
    portfolio_id: str,
    data: TradeRequest,
    repo: SqlAlchemyPortfolioRepository = Depends(get_portfolio_repo),
    context: AppContext = Depends(get_app_context),
) -> TradeResultResponse:
    """
    Execute a buy, sell, short or cover.

    Without an explicit price the trade fills at the current quote. Trades
    on one portfolio run one at a time, so each starts from the last saved
    state.
    """
    symbol = normalize_symbol(data.symbol)
    async with context.portfolio_lock(portfolio_id):
        portfolio = _load(repo, portfolio_id)
        price = data.price
        if price is None:
            price = require_price(await context.quote_prices([symbol]), symbol)

        ledger = PortfolioLedger(portfolio)
        actions: dict[TradeType, Callable[..., TradeRecord]] = {
            TradeType.BUY: ledger.buy,
            TradeType.SELL: ledger.sell,
            TradeType.SHORT: ledger.short,
            TradeType.COVER: ledger.cover,
        }
        trade = actions[data.action](symbol, price, data.quantity)
        saved = repo.save(ledger.portfolio)
    return TradeResultResponse(trade=TradeResponse.model_validate(trade), cash=saved.cash)


@router.get("/{portfolio_id}/value", response_model=ValuationResponse)
async def get_value(
    portfolio_id: str,
    repo: SqlAlchemyPortfolioRepository = Depends(get_portfolio_repo),
    context: AppContext = Depends(get_app_context),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> ValuationResponse:
    """Mark every holding to its current quote and record the day's value."""
    async with context.portfolio_lock(portfolio_id):
        portfolio = _load(repo, portfolio_id)
        view = analysis.valuation(portfolio, await _held_prices(context, portfolio))
        repo.record_value(portfolio_id, view.total_value, context.clock())
    return ValuationResponse.model_validate(view)


@router.get("/{portfolio_id}/metrics", response_model=MetricsResponse)
async def get_metrics(
    portfolio_id: str,
    repo: SqlAlchemyPortfolioRepository = Depends(get_portfolio_repo),
    context: AppContext = Depends(get_app_context),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> MetricsResponse:
    """
    Return, risk and trade statistics.

    Risk figures come from the daily value snapshots recorded by valuations,
    today's included.
    """
    async with context.portfolio_lock(portfolio_id):
        portfolio = _load(repo, portfolio_id)
        prices = await _held_prices(context, portfolio)
        current = analysis.valuation(portfolio, prices).total_value
        repo.record_value(portfolio_id, current, context.clock())
        history = repo.value_history(portfolio_id)
    metrics = analysis.portfolio_metrics(portfolio, prices, history)
    return MetricsResponse.model_validate(metrics)


@router.get("/{portfolio_id}/allocation", response_model=AllocationResponse)
async def get_allocation(
    portfolio_id: str,
    repo: SqlAlchemyPortfolioRepository = Depends(get_portfolio_repo),
    context: AppContext = Depends(get_app_context),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> AllocationResponse:
    """Long market value by sector."""
    portfolio = _load(repo, portfolio_id)
    items = analysis.sector_allocation(portfolio, await _held_prices(context, portfolio))
    return AllocationResponse(
        items=[AllocationItemResponse.model_validate(item) for item in items],
        total_value=sum((item.market_value for item in items), Decimal("0")),
    )
