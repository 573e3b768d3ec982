"""Database connection and session management."""

from typing import Generator

from sqlalchemy import create_engine, Engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session, declarative_base

Base = declarative_base()


class Database:
    """
    Owns a SQLAlchemy engine and its session factory.

    Constructed explicitly by the application context (or tests) and
    disposed with ``close()``.
    """

    def __init__(self, database_url: str, echo: bool = False):
        engine_kwargs: dict = {"echo": echo}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}  # SQLite-specific
            if ":memory:" in database_url:
                # Share one connection so every session sees the same in-memory DB
                engine_kwargs["poolclass"] = StaticPool
        self._engine: Engine = create_engine(database_url, **engine_kwargs)
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self._engine,
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        return self._session_factory

    def create_tables(self) -> None:
        """Create database tables for all ORM models."""
        from finclash.repositories.sqlalchemy import orm_models  # noqa: F401

        Base.metadata.create_all(bind=self._engine)

    def drop_tables(self) -> None:
        Base.metadata.drop_all(bind=self._engine)

    def session(self) -> Session:
        """Get a new database session (caller closes it)."""
        return self._session_factory()

    def get_db(self) -> Generator[Session, None, None]:
        """Generator that provides a session and closes it afterwards."""
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self._engine.dispose()
