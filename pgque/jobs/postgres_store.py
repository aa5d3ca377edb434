"""
Postgres job store backed by a SQLAlchemy async engine.

Mutual exclusion between workers comes from session-level advisory locks
keyed by job_id. Those locks live as long as the database session, so a
crashed worker's jobs become claimable again as soon as its connection dies.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from pgque.config.logging import get_logger
from pgque.core.exceptions import EnqueueError, StoreError
from pgque.jobs import sql
from pgque.jobs.models import JobCandidate, JobRecord
from pgque.jobs.store import insert_columns

logger = get_logger(__name__)


def _candidate(row: Mapping[str, Any]) -> JobCandidate:
    return JobCandidate(
        id=row["job_id"],
        priority=row["priority"],
        run_at=row["run_at"],
        type=row["type"],
        args=row["args"],
        error_count=row["error_count"],
    )


class PostgresConnection:
    """StoreConnection over one AUTOCOMMIT connection."""

    def __init__(self, connection: AsyncConnection):
        self.connection = connection
        self.held_locks: set[int] = set()

    async def insert(self, columns: Mapping[str, Any]) -> JobCandidate:
        values = insert_columns(columns)
        try:
            result = await self.connection.execute(sql.insert_job(list(values)), values)
        except DBAPIError as e:
            raise EnqueueError(
                "Job store rejected insert",
                details={"type": values.get("type"), "error": str(e.orig)},
            ) from e

        return _candidate(result.mappings().one())

    async def claim_next(self) -> JobCandidate | None:
        result = await self.connection.execute(sql.LOCK_JOB)
        row = result.mappings().first()
        if row is None:
            return None

        self.held_locks.add(row["job_id"])
        return _candidate(row)

    async def still_exists(self, priority: int, run_at: datetime, job_id: int) -> bool:
        result = await self.connection.execute(
            sql.CHECK_JOB, {"priority": priority, "run_at": run_at, "job_id": job_id}
        )
        return result.first() is not None

    async def delete(self, priority: int, run_at: datetime, job_id: int) -> None:
        await self.connection.execute(
            sql.DESTROY_JOB, {"priority": priority, "run_at": run_at, "job_id": job_id}
        )

    async def record_failure(
        self,
        priority: int,
        run_at: datetime,
        job_id: int,
        error_count: int,
        new_run_at: datetime,
        message: str,
    ) -> None:
        await self.connection.execute(
            sql.SET_ERROR,
            {
                "error_count": error_count,
                "new_run_at": new_run_at,
                "last_error": message,
                "priority": priority,
                "run_at": run_at,
                "job_id": job_id,
            },
        )

    async def release_lock(self, job_id: int) -> None:
        await self.connection.execute(sql.ADVISORY_UNLOCK, {"job_id": job_id})
        self.held_locks.discard(job_id)


class PostgresJobStore:
    """JobStore drawing connections from an AsyncEngine pool."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.SessionLocal = async_sessionmaker(
            bind=engine, class_=AsyncSession, expire_on_commit=False
        )

    @asynccontextmanager
    async def checkout(self) -> AsyncIterator[PostgresConnection]:
        async with self.engine.connect() as raw:
            raw = await raw.execution_options(isolation_level="AUTOCOMMIT")
            connection = PostgresConnection(raw)
            try:
                yield connection
            finally:
                # A pooled session keeps its advisory locks; never hand one back holding any.
                if connection.held_locks:
                    logger.warning(
                        "Releasing advisory locks left on connection",
                        job_ids=sorted(connection.held_locks),
                    )
                    await raw.execute(text("SELECT pg_advisory_unlock_all()"))

    async def close(self) -> None:
        await self.engine.dispose()

    # Operator queries. These run in ordinary sessions and take no advisory locks.

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.SessionLocal() as session:
                yield session
        except (DBAPIError, OSError) as e:
            logger.error("Job store query failed", error=str(e))
            raise StoreError("Job store unavailable", details={"error": str(e)}) from e

    async def list_jobs(
        self,
        job_type: str | None = None,
        failing: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[JobRecord], int]:
        base_query = select(JobRecord)
        if job_type is not None:
            base_query = base_query.where(JobRecord.type == job_type)
        if failing is True:
            base_query = base_query.where(JobRecord.error_count > 0)
        elif failing is False:
            base_query = base_query.where(JobRecord.error_count == 0)

        async with self._session() as session:
            count_query = select(func.count()).select_from(base_query.subquery())
            total = (await session.execute(count_query)).scalar() or 0

            jobs_query = (
                base_query.order_by(JobRecord.priority, JobRecord.run_at, JobRecord.id)
                .offset(offset)
                .limit(limit)
            )
            jobs = (await session.execute(jobs_query)).scalars().all()

        return list(jobs), total

    async def get_job(self, job_id: int) -> JobRecord | None:
        async with self._session() as session:
            result = await session.execute(select(JobRecord).where(JobRecord.id == job_id))
            return result.scalar_one_or_none()

    async def job_stats(self) -> dict[str, Any]:
        async with self._session() as session:
            total = (await session.execute(select(func.count(JobRecord.id)))).scalar() or 0

            type_result = await session.execute(
                select(JobRecord.type, func.count(JobRecord.id)).group_by(JobRecord.type)
            )
            by_type = dict(type_result.all())

            failing = (
                await session.execute(
                    select(func.count(JobRecord.id)).where(JobRecord.error_count > 0)
                )
            ).scalar() or 0

            ready = (
                await session.execute(
                    select(func.count(JobRecord.id)).where(JobRecord.run_at <= func.now())
                )
            ).scalar() or 0

            locked = (await session.execute(sql.COUNT_LOCKED_JOBS)).scalar() or 0

        return {
            "total_jobs": total,
            "by_type": by_type,
            "failing": failing,
            "ready": ready,
            "locked": locked,
        }

    async def remove_job(self, job_id: int) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(JobRecord).where(JobRecord.id == job_id))
            await session.commit()
        return result.rowcount > 0

    async def retry_job(self, job_id: int) -> bool:
        async with self._session() as session:
            result = await session.execute(
                update(JobRecord).where(JobRecord.id == job_id).values(run_at=func.now())
            )
            await session.commit()
        return result.rowcount > 0
