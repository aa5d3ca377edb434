from typing import TYPE_CHECKING, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pgque.config.settings import Settings, get_settings

if TYPE_CHECKING:
    from pgque.jobs.postgres_store import PostgresJobStore


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine whose pool backs both sessions and worker connections."""
    return create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        echo=settings.debug and settings.log_level == "DEBUG",
    )


class Database:
    """
    Database connection management.

    One engine serves two kinds of consumers: ORM sessions for the operator
    API, and long-lived scoped connections checked out by workers through
    the job store.
    """

    def __init__(self, settings: Settings, engine: AsyncEngine | None = None):
        self.settings = settings
        self.engine = engine or build_engine(settings)
        self.SessionLocal = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._job_store: "PostgresJobStore | None" = None

    @property
    def job_store(self) -> "PostgresJobStore":
        if self._job_store is None:
            from pgque.jobs.postgres_store import PostgresJobStore

            self._job_store = PostgresJobStore(self.engine)
        return self._job_store

    async def close(self):
        """Close database connections."""
        await self.engine.dispose()


# Global database instance, shared by the API and created on first use
_database: Database | None = None


def get_database(settings: Settings = Depends(get_settings)) -> Database:
    """Get or create the global database instance."""
    global _database
    if _database is None:
        _database = Database(settings)
    return _database


async def get_session(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """Dependency injection for database sessions."""
    async with database.SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_database() -> None:
    """Dispose the global engine; called on application shutdown."""
    global _database
    if _database is not None:
        await _database.close()
        _database = None
