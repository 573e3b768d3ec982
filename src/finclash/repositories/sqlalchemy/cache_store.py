"""SQLAlchemy implementation of DurableCacheStore."""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from finclash.core.exceptions import PersistenceError
from finclash.core.timezone import from_storage, to_storage
from finclash.domain.models import CacheEntry
from finclash.repositories.sqlalchemy.orm_models import CacheEntryORM


class SqlAlchemyCacheStore:
    """
    SQLAlchemy-backed durable mirror for persistent cache types.

    Opens a short-lived session per call so the store can outlive any
    single request. Every storage failure surfaces as PersistenceError.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def save(self, entries: list[CacheEntry]) -> None:
        """Insert or replace the given entries."""
        if not entries:
            return
        with self._session_factory() as db:
            try:
                for entry in entries:
                    orm_entry = db.get(CacheEntryORM, entry.key)
                    if orm_entry is None:
                        orm_entry = CacheEntryORM(key=entry.key)
                        db.add(orm_entry)
                    orm_entry.data_type = entry.data_type
                    orm_entry.data = entry.data
                    orm_entry.stored_at_est = to_storage(entry.stored_at)
                    orm_entry.last_accessed_at_est = to_storage(entry.last_accessed_at)
                    orm_entry.hit_count = entry.hit_count
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError(f"Failed to save cache entries: {exc}") from exc

    def load(self) -> list[CacheEntry]:
        """Return every stored entry, with original timestamps."""
        with self._session_factory() as db:
            try:
                rows = db.query(CacheEntryORM).order_by(CacheEntryORM.stored_at_est).all()
            except SQLAlchemyError as exc:
                raise PersistenceError(f"Failed to load cache entries: {exc}") from exc
            return [self._to_domain(row) for row in rows]

    def delete(self, keys: list[str]) -> None:
        """Remove entries by key; unknown keys are ignored."""
        if not keys:
            return
        with self._session_factory() as db:
            try:
                db.query(CacheEntryORM).filter(CacheEntryORM.key.in_(keys)).delete(
                    synchronize_session=False
                )
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError(f"Failed to delete cache entries: {exc}") from exc

    def clear(self) -> None:
        """Remove all entries."""
        with self._session_factory() as db:
            try:
                db.query(CacheEntryORM).delete()
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError(f"Failed to clear cache entries: {exc}") from exc

    @staticmethod
    def _to_domain(orm: CacheEntryORM) -> CacheEntry:
        """Convert ORM cache entry to domain model."""
        return CacheEntry(
            key=orm.key,
            data=orm.data,
            data_type=orm.data_type,
            stored_at=from_storage(orm.stored_at_est),
            last_accessed_at=from_storage(orm.last_accessed_at_est),
            hit_count=orm.hit_count or 0,
        )
