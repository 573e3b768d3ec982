"""TTL/LRU cache for market data API responses."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from finclash.config.settings import DEFAULT_TTL_SECONDS
from finclash.core.exceptions import ConfigurationError, PersistenceError
from finclash.core.timezone import now_eastern
from finclash.domain.models import CacheEntry, DataType
from finclash.domain.views import CacheStats
from finclash.repositories.protocols import DurableCacheStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 500
DEFAULT_DURABLE_TYPES = (DataType.FUNDAMENTALS, DataType.COMPANY)


@dataclass
class _PendingWrites:
    """Store operations taken out of the cache for one flush."""

    clear: bool = False
    deleted: list[str] = field(default_factory=list)
    entries: list[CacheEntry] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.clear or bool(self.deleted) or bool(self.entries)


class APICache:
    """
    In-memory cache of API responses keyed by request fingerprint.

    Expiry is per data type (TTL table) and applied lazily on read, plus an
    optional periodic ``cleanup()`` sweep. Capacity overflow evicts the
    least recently accessed entry.

    Entries of durable types are mirrored to a DurableCacheStore. Reads and
    writes never touch the store: saves, deletes and clears are queued and
    applied by ``flush()`` (or ``aflush()`` from async code, which runs the
    store calls in a worker thread). ``load_persistent()`` reloads them.
    """

    def __init__(
        self,
        ttl_seconds: Optional[dict[DataType, int]] = None,
        max_size: int = DEFAULT_MAX_SIZE,
        durable_types: Iterable[DataType] = DEFAULT_DURABLE_TYPES,
        store: Optional[DurableCacheStore] = None,
        clock: Callable[[], datetime] = now_eastern,
    ):
        table = dict(DEFAULT_TTL_SECONDS) if ttl_seconds is None else dict(ttl_seconds)
        self._ttl = self._validate_ttl_table(table)
        if max_size <= 0:
            raise ConfigurationError(f"Cache max_size must be positive, got {max_size}")
        self._max_size = max_size
        self._durable_types = frozenset(DataType(t) for t in durable_types)
        self._store = store
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

        # Write-behind queue for the durable store
        self._dirty: set[str] = set()
        self._evicted: dict[str, CacheEntry] = {}
        self._deleted: set[str] = set()
        self._clear_pending = False

    @staticmethod
    def _validate_ttl_table(table: dict) -> dict[DataType, timedelta]:
        ttl: dict[DataType, timedelta] = {}
        for key, seconds in table.items():
            try:
                data_type = DataType(key)
            except ValueError:
                raise ConfigurationError(f"Unknown data type in TTL table: {key}") from None
            if not isinstance(seconds, (int, float)) or seconds <= 0:
                raise ConfigurationError(f"TTL for {data_type.value} must be positive, got {seconds}")
            ttl[data_type] = timedelta(seconds=seconds)
        missing = [t.value for t in DataType if t not in ttl]
        if missing:
            raise ConfigurationError(f"TTL table missing data types: {', '.join(missing)}")
        return ttl

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._dirty or self._evicted or self._deleted or self._clear_pending)

    def ttl(self, data_type: DataType) -> timedelta:
        return self._ttl[DataType(data_type)]

    def is_durable(self, data_type: DataType) -> bool:
        return DataType(data_type) in self._durable_types

    def get(self, key: str, data_type: DataType = DataType.QUOTE) -> Optional[Any]:
        """
        Return cached data, or None on a miss.

        An expired entry is removed (memory now, durable mirror on the next
        flush) and reported as a miss. A data type mismatch is a miss but
        leaves the entry alone.
        """
        entry = self._entries.get(key)
        if entry is None or entry.data_type != DataType(data_type):
            return None

        now = self._clock()
        if entry.is_expired(now, self._ttl[entry.data_type]):
            self._remove(key)
            return None

        entry.touch(now)
        return entry.data

    def has(self, key: str, data_type: DataType = DataType.QUOTE) -> bool:
        """Return True if a valid entry exists (counts as an access)."""
        return self.get(key, data_type) is not None

    def set(self, key: str, data: Any, data_type: DataType = DataType.QUOTE) -> None:
        """Store data, evicting the least recently used entry when full."""
        data_type = DataType(data_type)
        if key not in self._entries and len(self._entries) >= self._max_size:
            self.evict_lru()

        now = self._clock()
        self._entries[key] = CacheEntry(
            key=key,
            data=data,
            data_type=data_type,
            stored_at=now,
            last_accessed_at=now,
            hit_count=0,
        )
        self._evicted.pop(key, None)
        if data_type in self._durable_types:
            self._deleted.discard(key)
            self._dirty.add(key)

    def invalidate(self, key: str) -> None:
        """Remove one entry; its durable copy is deleted on the next flush."""
        entry = self._entries.pop(key, None)
        self._dirty.discard(key)
        self._evicted.pop(key, None)
        if entry is None or entry.data_type in self._durable_types:
            self._deleted.add(key)

    def invalidate_type(self, data_type: DataType) -> int:
        """Remove every entry of a data type; returns the number removed."""
        data_type = DataType(data_type)
        keys = [k for k, e in self._entries.items() if e.data_type == data_type]
        for key in keys:
            self._entries.pop(key, None)
            self._dirty.discard(key)
        if data_type in self._durable_types:
            evicted = [k for k, e in self._evicted.items() if e.data_type == data_type]
            for key in evicted:
                self._evicted.pop(key)
            self._deleted.update(keys)
            self._deleted.update(evicted)
        return len(keys)

    def clear(self) -> None:
        """Remove all entries; the durable mirror is wiped on the next flush."""
        self._entries.clear()
        self._dirty.clear()
        self._evicted.clear()
        self._deleted.clear()
        self._clear_pending = True

    def evict_lru(self) -> Optional[str]:
        """
        Evict the entry with the oldest last access; returns its key.

        Eviction never deletes a durable copy. An unflushed durable entry
        stays queued so the next flush still writes it.
        """
        if not self._entries:
            return None
        lru_key = min(self._entries, key=lambda k: self._entries[k].last_accessed_at)
        entry = self._entries.pop(lru_key)
        if lru_key in self._dirty:
            self._dirty.discard(lru_key)
            self._evicted[lru_key] = entry
        logger.debug("Evicted least recently used cache entry %s", lru_key)
        return lru_key

    def cleanup(self) -> int:
        """Sweep expired entries; returns the number removed."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.is_expired(now, self._ttl[entry.data_type])
        ]
        for key in expired:
            self._remove(key)
        if expired:
            logger.info("Cache cleanup: removed %d expired entries", len(expired))
        return len(expired)

    def stats(self) -> CacheStats:
        """Occupancy, per-type counts, hit rate and entry ages."""
        if not self._entries:
            return CacheStats()

        now = self._clock()
        by_type: dict[str, int] = {}
        total_hits = 0
        for entry in self._entries.values():
            by_type[entry.data_type.value] = by_type.get(entry.data_type.value, 0) + 1
            total_hits += entry.hit_count

        # Each stored entry accounts for one initial (missed) access
        total_accesses = total_hits + len(self._entries)
        hit_rate = (Decimal(total_hits) / Decimal(total_accesses) * 100).quantize(Decimal("0.1"))

        ages = [entry.age(now).total_seconds() for entry in self._entries.values()]
        return CacheStats(
            count=len(self._entries),
            by_type=by_type,
            hit_rate=hit_rate,
            oldest_age=max(ages),
            newest_age=min(ages),
        )

    # Persistence

    def load_persistent(self) -> int:
        """
        Reload durable entries from the store, keeping original timestamps.

        Returns the number of entries loaded. Store failures are logged and
        leave the in-memory cache untouched.
        """
        if self._store is None:
            return 0
        try:
            entries = self._store.load()
        except PersistenceError as exc:
            logger.warning("Failed to load persistent cache: %s", exc.message)
            return 0

        loaded = 0
        for entry in entries:
            if entry.data_type not in self._durable_types:
                continue
            if entry.key not in self._entries and len(self._entries) >= self._max_size:
                self.evict_lru()
            self._entries[entry.key] = entry
            loaded += 1
        logger.info("Loaded %d persistent cache entries", loaded)
        return loaded

    def flush(self) -> int:
        """
        Apply queued clears, deletes and saves to the store.

        Returns the number of entries saved; on failure the work stays queued.
        """
        pending = self._take_pending()
        if not pending:
            return 0
        try:
            self._write(pending)
        except PersistenceError as exc:
            self._requeue(pending, exc)
            return 0
        return len(pending.entries)

    async def aflush(self) -> int:
        """``flush()`` with the blocking store calls moved off the event loop."""
        pending = self._take_pending()
        if not pending:
            return 0
        try:
            await asyncio.to_thread(self._write, pending)
        except PersistenceError as exc:
            self._requeue(pending, exc)
            return 0
        return len(pending.entries)

    def _take_pending(self) -> _PendingWrites:
        pending = _PendingWrites()
        if self._store is not None:
            pending.clear = self._clear_pending
            pending.deleted = sorted(self._deleted)
            pending.entries = [self._entries[k] for k in self._dirty if k in self._entries]
            pending.entries.extend(self._evicted.values())
        self._clear_pending = False
        self._deleted.clear()
        self._dirty.clear()
        self._evicted.clear()
        return pending

    def _write(self, pending: _PendingWrites) -> None:
        if pending.clear:
            self._store.clear()
        if pending.deleted:
            self._store.delete(pending.deleted)
        if pending.entries:
            self._store.save(pending.entries)

    def _requeue(self, pending: _PendingWrites, exc: PersistenceError) -> None:
        """Put failed work back, unless newer changes have superseded it."""
        logger.warning(
            "Failed to persist cache changes (%d saves, %d deletes): %s",
            len(pending.entries),
            len(pending.deleted),
            exc.message,
        )
        if pending.clear:
            self._clear_pending = True
        for key in pending.deleted:
            if key not in self._dirty:
                self._deleted.add(key)
        for entry in pending.entries:
            if entry.key in self._deleted:
                continue
            if entry.key in self._entries:
                self._dirty.add(entry.key)
            else:
                self._evicted.setdefault(entry.key, entry)

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        self._dirty.discard(key)
        self._evicted.pop(key, None)
        if entry is not None and entry.data_type in self._durable_types:
            self._deleted.add(key)
