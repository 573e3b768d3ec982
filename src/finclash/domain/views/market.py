"""View models for market data cache and rate limiter statistics."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


@dataclass
class CacheStats:
    """Snapshot of cache occupancy and effectiveness."""

    count: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    hit_rate: Decimal = field(default_factory=lambda: Decimal("0"))
    oldest_age: Optional[float] = None
    newest_age: Optional[float] = None


@dataclass
class RateLimitStats:
    """Snapshot of rate limiter headroom."""

    remaining: int
    total: int
    time_until_reset: float
    provider: str
