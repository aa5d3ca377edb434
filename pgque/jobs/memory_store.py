"""
In-process job store.

Implements the same contract as the Postgres store for a single event loop:
locks belong to a connection and disappear when it is returned, the same
way advisory locks disappear with a database session. Used by the test
suite and for running workers locally without a database.
"""

import asyncio
import itertools
import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, Mapping

from pgque.core.exceptions import EnqueueError
from pgque.jobs.models import DEFAULT_PRIORITY, JobCandidate, JobRecord
from pgque.jobs.store import insert_columns


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MemoryConnection:
    """StoreConnection bound to a MemoryJobStore."""

    def __init__(self, store: "MemoryJobStore"):
        self.store = store

    async def insert(self, columns: Mapping[str, Any]) -> JobCandidate:
        values = insert_columns(columns)
        job_type = values.get("type")
        if not isinstance(job_type, str) or not job_type:
            raise EnqueueError("Job type must be a non-empty string", details=dict(values))

        try:
            args = json.loads(values.get("args", "[]"))
        except (TypeError, ValueError) as e:
            raise EnqueueError("Job args must be a JSON array", details={"error": str(e)}) from e
        if not isinstance(args, list):
            raise EnqueueError("Job args must be a JSON array", details={"args": args})

        priority = values.get("priority", DEFAULT_PRIORITY)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise EnqueueError("Job priority must be an integer", details={"priority": priority})

        run_at = values.get("run_at") or self.store.clock()
        if not isinstance(run_at, datetime) or run_at.tzinfo is None:
            raise EnqueueError(
                "Job run_at must be a timezone-aware datetime", details={"run_at": repr(run_at)}
            )

        record = JobRecord(
            id=next(self.store._ids),
            type=job_type,
            args=args,
            priority=priority,
            run_at=run_at,
            error_count=0,
            last_error=None,
        )
        self.store.records[record.id] = record
        return record.to_candidate()

    async def claim_next(self) -> JobCandidate | None:
        now = self.store.clock()
        eligible = sorted(
            (r for r in self.store.records.values() if r.run_at <= now),
            key=lambda r: (r.priority, r.run_at, r.id),
        )
        for record in eligible:
            if record.id in self.store.locks:
                continue
            self.store.locks[record.id] = self
            return record.to_candidate()
        return None

    async def still_exists(self, priority: int, run_at: datetime, job_id: int) -> bool:
        return self.store._match(priority, run_at, job_id) is not None

    async def delete(self, priority: int, run_at: datetime, job_id: int) -> None:
        if self.store._match(priority, run_at, job_id) is not None:
            del self.store.records[job_id]

    async def record_failure(
        self,
        priority: int,
        run_at: datetime,
        job_id: int,
        error_count: int,
        new_run_at: datetime,
        message: str,
    ) -> None:
        record = self.store._match(priority, run_at, job_id)
        if record is not None:
            record.error_count = error_count
            record.run_at = new_run_at
            record.last_error = message

    async def release_lock(self, job_id: int) -> None:
        if self.store.locks.get(job_id) is self:
            del self.store.locks[job_id]

    def _release_all(self) -> None:
        for job_id in [k for k, owner in self.store.locks.items() if owner is self]:
            del self.store.locks[job_id]


class MemoryJobStore:
    """Single-event-loop JobStore with a bounded connection pool."""

    def __init__(
        self,
        pool_size: int = 10,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.clock = clock
        self.records: dict[int, JobRecord] = {}
        self.locks: dict[int, MemoryConnection] = {}
        self._ids = itertools.count(1)
        self._pool = asyncio.Semaphore(pool_size)

    @asynccontextmanager
    async def checkout(self) -> AsyncIterator[MemoryConnection]:
        async with self._pool:
            connection = MemoryConnection(self)
            try:
                yield connection
            finally:
                connection._release_all()

    async def close(self) -> None:
        self.locks.clear()

    def _match(self, priority: int, run_at: datetime, job_id: int) -> JobRecord | None:
        record = self.records.get(job_id)
        if record is None or record.priority != priority or record.run_at != run_at:
            return None
        return record

    # Operator queries

    async def list_jobs(
        self,
        job_type: str | None = None,
        failing: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[JobRecord], int]:
        rows = sorted(self.records.values(), key=lambda r: (r.priority, r.run_at, r.id))
        if job_type is not None:
            rows = [r for r in rows if r.type == job_type]
        if failing is not None:
            rows = [r for r in rows if r.is_failing() == failing]
        return rows[offset : offset + limit], len(rows)

    async def get_job(self, job_id: int) -> JobRecord | None:
        return self.records.get(job_id)

    async def job_stats(self) -> dict[str, Any]:
        now = self.clock()
        by_type: dict[str, int] = {}
        for record in self.records.values():
            by_type[record.type] = by_type.get(record.type, 0) + 1
        return {
            "total_jobs": len(self.records),
            "by_type": by_type,
            "failing": sum(1 for r in self.records.values() if r.is_failing()),
            "ready": sum(1 for r in self.records.values() if r.run_at <= now),
            "locked": len(self.locks),
        }

    async def remove_job(self, job_id: int) -> bool:
        return self.records.pop(job_id, None) is not None

    async def retry_job(self, job_id: int) -> bool:
        record = self.records.get(job_id)
        if record is None:
            return False
        record.run_at = self.clock()
        return True
