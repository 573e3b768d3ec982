"""Durable key-value store protocol for persistent cache entries."""

from typing import Protocol

from finclash.domain.models import CacheEntry


class DurableCacheStore(Protocol):
    """
    Interface for mirroring cache entries to durable storage.

    Entries are keyed by cache key. Implementations raise PersistenceError
    on any storage failure.
    """

    def save(self, entries: list[CacheEntry]) -> None:
        """Insert or replace the given entries."""
        ...

    def load(self) -> list[CacheEntry]:
        """Return every stored entry, with original timestamps."""
        ...

    def delete(self, keys: list[str]) -> None:
        """Remove entries by key; unknown keys are ignored."""
        ...

    def clear(self) -> None:
        """Remove all entries."""
        ...
