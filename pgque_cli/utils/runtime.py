"""Database-backed queue context for CLI commands"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from pgque.config.settings import settings
from pgque.infra.database import Database
from pgque.jobs.context import ErrorHandler, QueueContext


@asynccontextmanager
async def open_context(error_handler: ErrorHandler | None = None) -> AsyncIterator[QueueContext]:
    """Yield a QueueContext over a fresh engine, disposing it afterwards"""
    database = Database(settings)
    try:
        yield QueueContext.from_settings(settings, database.job_store, error_handler)
    finally:
        await database.close()
