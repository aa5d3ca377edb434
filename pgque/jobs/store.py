"""
Storage contract used by the enqueue and worker paths.

A worker performs lock, validate, execute and unlock on one
``StoreConnection`` because the lock belongs to the connection's session.
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Mapping, Protocol

from pgque.jobs.models import JobCandidate, JobRecord

# Columns the enqueue path is allowed to write
INSERTABLE_COLUMNS = ("type", "args", "run_at", "priority")


class StoreConnection(Protocol):
    """One checked-out connection. Every call on it shares a single session."""

    async def insert(self, columns: Mapping[str, Any]) -> JobCandidate:
        """Insert one job row and return it. Raises EnqueueError when the store rejects it."""
        ...

    async def claim_next(self) -> JobCandidate | None:
        """
        Select the first eligible unlocked job by (priority, run_at, id) and
        take a session-scoped lock on its id, atomically.
        """
        ...

    async def still_exists(self, priority: int, run_at: datetime, job_id: int) -> bool:
        ...

    async def delete(self, priority: int, run_at: datetime, job_id: int) -> None:
        ...

    async def record_failure(
        self,
        priority: int,
        run_at: datetime,
        job_id: int,
        error_count: int,
        new_run_at: datetime,
        message: str,
    ) -> None:
        ...

    async def release_lock(self, job_id: int) -> None:
        ...


class JobStore(Protocol):
    """A pool of store connections."""

    def checkout(self) -> AbstractAsyncContextManager[StoreConnection]:
        """Borrow a connection for the duration of the ``async with`` block."""
        ...

    async def close(self) -> None:
        ...

    # Operator queries; never touch job locks.

    async def list_jobs(
        self,
        job_type: str | None = None,
        failing: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[JobRecord], int]:
        ...

    async def get_job(self, job_id: int) -> JobRecord | None:
        ...

    async def job_stats(self) -> dict[str, Any]:
        ...

    async def remove_job(self, job_id: int) -> bool:
        ...

    async def retry_job(self, job_id: int) -> bool:
        """Make a job eligible immediately by setting its run_at to now."""
        ...


def insert_columns(columns: Mapping[str, Any]) -> dict[str, Any]:
    """Drop unset values and reject column names outside the insert whitelist."""
    unknown = set(columns) - set(INSERTABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Cannot insert job columns: {', '.join(sorted(unknown))}")
    return {k: v for k, v in columns.items() if v is not None}
