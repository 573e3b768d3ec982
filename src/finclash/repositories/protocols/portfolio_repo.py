"""Portfolio repository protocol."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol, Optional

from finclash.domain.models import Portfolio


class PortfolioRepository(Protocol):
    """Interface for portfolio snapshot data access."""

    def get_by_id(self, portfolio_id: str) -> Optional[Portfolio]:
        """Get a portfolio with its positions and trade history."""
        ...

    def list_all(self) -> list[Portfolio]:
        """List all portfolios."""
        ...

    def save(self, portfolio: Portfolio) -> Portfolio:
        """Insert or replace the full portfolio snapshot."""
        ...

    def delete(self, portfolio_id: str) -> None:
        """Delete a portfolio and everything it owns."""
        ...

    def record_value(self, portfolio_id: str, total_value: Decimal, at: datetime) -> None:
        """Store a daily total value snapshot (one per Eastern calendar day)."""
        ...

    def value_history(self, portfolio_id: str) -> list[Decimal]:
        """Daily total values, oldest first."""
        ...
