"""Cache entry model for market data responses."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from finclash.domain.models.enums import DataType


@dataclass
class CacheEntry:
    """
    A cached API response keyed by request fingerprint.

    An entry past its TTL is logically absent even while still stored.
    """

    key: str
    data: Any
    data_type: DataType
    stored_at: datetime
    last_accessed_at: datetime
    hit_count: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.data_type, str):
            self.data_type = DataType(self.data_type)

    def age(self, now: datetime) -> timedelta:
        """Time elapsed since the entry was stored."""
        return now - self.stored_at

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """Return True once more than ``ttl`` has passed since storage."""
        return self.age(now) > ttl

    def touch(self, now: datetime) -> None:
        """Record a cache hit."""
        self.last_accessed_at = now
        self.hit_count += 1
