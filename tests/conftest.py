import os
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from pgque.core.registries import JobRegistry
from pgque.infra.database import Base, get_session
from pgque.jobs.context import QueueContext
from pgque.jobs.memory_store import MemoryJobStore

# Import models to ensure they're registered
from pgque.jobs import models  # noqa: F401


class FakeClock:
    """Deterministic clock shared by the store and the retry policy."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def store(clock) -> MemoryJobStore:
    return MemoryJobStore(clock=clock)


@pytest.fixture
def registry() -> JobRegistry:
    """A fresh registry so tests never leak job types into each other."""
    return JobRegistry()


@pytest.fixture
def reported_errors() -> list[BaseException]:
    return []


@pytest.fixture
def context(store, registry, clock, reported_errors) -> QueueContext:
    return QueueContext(
        store=store,
        registry=registry,
        error_handler=reported_errors.append,
        clock=clock,
    )


class FakeSession:
    """Minimal AsyncSession stand-in for the health check."""

    async def execute(self, statement):
        return None


@pytest.fixture
def app(context):
    """FastAPI application wired to the in-memory store."""
    from pgque.jobs.routes import get_queue_context
    from pgque.main import create_app

    app = create_app()
    app.dependency_overrides[get_queue_context] = lambda: context
    app.dependency_overrides[get_session] = lambda: FakeSession()

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def pg_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Engine for a real PostgreSQL database, when DATABASE_URL points at one."""
    database_url = os.getenv("DATABASE_URL")

    if not database_url or "postgresql" not in database_url:
        pytest.skip("No PostgreSQL database available for testing")

    engine = create_async_engine(database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text("DELETE FROM que_jobs"))

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text("DELETE FROM que_jobs"))
    await engine.dispose()
