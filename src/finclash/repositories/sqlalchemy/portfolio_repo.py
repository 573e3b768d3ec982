"""SQLAlchemy implementation of PortfolioRepository."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from finclash.core.timezone import from_storage, now_eastern, to_eastern, to_storage
from finclash.domain.models import Portfolio, Position, ShortPosition, TradeRecord
from finclash.repositories.sqlalchemy.orm_models import (
    PortfolioORM,
    PortfolioValueORM,
    PositionORM,
    ShortPositionORM,
    TradeORM,
)


class SqlAlchemyPortfolioRepository:
    """SQLAlchemy-backed portfolio repository."""

    def __init__(self, db: Session):
        self._db = db

    def get_by_id(self, portfolio_id: str) -> Optional[Portfolio]:
        """Get a portfolio with its positions and trade history."""
        orm_portfolio = self._db.get(PortfolioORM, portfolio_id)
        return self._to_domain(orm_portfolio) if orm_portfolio else None

    def list_all(self) -> list[Portfolio]:
        """List all portfolios ordered by creation time."""
        orm_portfolios = (
            self._db.query(PortfolioORM)
            .order_by(PortfolioORM.created_at_est)
            .all()
        )
        return [self._to_domain(p) for p in orm_portfolios]

    def save(self, portfolio: Portfolio) -> Portfolio:
        """
        Insert or replace the full portfolio snapshot.

        Position rows are synced in place; stored trades are kept since
        history is append-only.
        """
        orm_portfolio = self._db.get(PortfolioORM, portfolio.portfolio_id)
        if orm_portfolio is None:
            orm_portfolio = PortfolioORM(
                portfolio_id=portfolio.portfolio_id,
                created_at_est=to_storage(portfolio.created_at_est or now_eastern()),
            )
            self._db.add(orm_portfolio)

        orm_portfolio.name = portfolio.name
        orm_portfolio.cash = portfolio.cash

        self._sync_positions(orm_portfolio, portfolio)

        stored_trades = len(orm_portfolio.trades)
        for sequence, trade in enumerate(portfolio.history[stored_trades:], start=stored_trades):
            orm_portfolio.trades.append(
                TradeORM(
                    sequence=sequence,
                    trade_type=trade.trade_type,
                    symbol=trade.symbol,
                    price=trade.price,
                    quantity=trade.quantity,
                    total=trade.total,
                    profit_loss=trade.profit_loss,
                    timestamp_est=to_storage(trade.timestamp),
                )
            )

        self._db.commit()
        self._db.refresh(orm_portfolio)
        return self._to_domain(orm_portfolio)

    @staticmethod
    def _sync_positions(orm_portfolio: PortfolioORM, portfolio: Portfolio) -> None:
        """Update position rows in place; rows for closed positions are removed."""
        longs = {s: p for s, p in portfolio.positions.items() if p.shares > 0}
        for orm_pos in list(orm_portfolio.positions):
            position = longs.pop(orm_pos.symbol, None)
            if position is None:
                orm_portfolio.positions.remove(orm_pos)
            else:
                orm_pos.shares = position.shares
                orm_pos.avg_price = position.avg_price
        for position in longs.values():
            orm_portfolio.positions.append(
                PositionORM(symbol=position.symbol, shares=position.shares, avg_price=position.avg_price)
            )

        shorts = {s: p for s, p in portfolio.short_positions.items() if p.quantity > 0}
        for orm_short in list(orm_portfolio.short_positions):
            short = shorts.pop(orm_short.symbol, None)
            if short is None:
                orm_portfolio.short_positions.remove(orm_short)
            else:
                orm_short.quantity = short.quantity
                orm_short.entry_price = short.entry_price
        for short in shorts.values():
            orm_portfolio.short_positions.append(
                ShortPositionORM(symbol=short.symbol, quantity=short.quantity, entry_price=short.entry_price)
            )

    def record_value(self, portfolio_id: str, total_value: Decimal, at: datetime) -> None:
        """Store the day's total value snapshot, replacing an earlier one that day."""
        recorded_at = to_eastern(at)
        as_of = recorded_at.date()
        snapshot = self._db.get(PortfolioValueORM, (portfolio_id, as_of))
        if snapshot is None:
            snapshot = PortfolioValueORM(portfolio_id=portfolio_id, as_of_date=as_of)
            self._db.add(snapshot)
        snapshot.total_value = total_value
        snapshot.recorded_at_est = to_storage(recorded_at)
        self._db.commit()

    def value_history(self, portfolio_id: str) -> list[Decimal]:
        """Daily total values, oldest first."""
        rows = (
            self._db.query(PortfolioValueORM)
            .filter(PortfolioValueORM.portfolio_id == portfolio_id)
            .order_by(PortfolioValueORM.as_of_date)
            .all()
        )
        return [self._decimal(row.total_value) for row in rows]

    def delete(self, portfolio_id: str) -> None:
        """Delete a portfolio and everything it owns."""
        orm_portfolio = self._db.get(PortfolioORM, portfolio_id)
        if orm_portfolio is not None:
            self._db.delete(orm_portfolio)
            self._db.commit()

    @staticmethod
    def _decimal(value) -> Decimal:
        return Decimal(str(value)) if value is not None else Decimal("0")

    @classmethod
    def _to_domain(cls, orm: PortfolioORM) -> Portfolio:
        """Convert ORM portfolio (with children) to domain model."""
        return Portfolio(
            portfolio_id=orm.portfolio_id,
            name=orm.name,
            cash=cls._decimal(orm.cash),
            positions={
                p.symbol: Position(
                    symbol=p.symbol,
                    shares=p.shares,
                    avg_price=cls._decimal(p.avg_price),
                )
                for p in orm.positions
            },
            short_positions={
                s.symbol: ShortPosition(
                    symbol=s.symbol,
                    quantity=s.quantity,
                    entry_price=cls._decimal(s.entry_price),
                )
                for s in orm.short_positions
            },
            history=[
                TradeRecord(
                    trade_type=t.trade_type,
                    symbol=t.symbol,
                    price=cls._decimal(t.price),
                    quantity=t.quantity,
                    timestamp=from_storage(t.timestamp_est),
                    total=cls._decimal(t.total),
                    profit_loss=cls._decimal(t.profit_loss) if t.profit_loss is not None else None,
                )
                for t in orm.trades
            ],
            created_at_est=from_storage(orm.created_at_est),
        )
